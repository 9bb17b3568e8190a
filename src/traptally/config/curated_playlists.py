"""Hand-maintained list of curated Spotify playlists mirrored by the sync engine.

Order matters: the sync run processes entries in this order, and the summary
keeps it.
"""

from traptally.domain.entities import CuratedPlaylistConfig, PlaylistType

# Fixed principal that owns the one stored Spotify credential
CURATOR_ID = "TRAP_TALLY_CURATOR"

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def month_name_to_number(name: str) -> int | None:
    """Map an English month name (any case, may be abbreviated) to 1-12."""
    cleaned = name.strip().lower()
    if len(cleaned) < 3:
        return None
    for index, month in enumerate(MONTH_NAMES, start=1):
        if month.lower().startswith(cleaned):
            return index
    return None


def _artist(playlist_id: str, artist_name: str) -> CuratedPlaylistConfig:
    # the stored name must stay "Best of <Artist>" for the associator
    return CuratedPlaylistConfig(
        spotify_playlist_id=playlist_id,
        type=PlaylistType.ARTIST,
        name_override=f"Best of {artist_name}",
    )


def _yearly(playlist_id: str, year: int) -> CuratedPlaylistConfig:
    return CuratedPlaylistConfig(
        spotify_playlist_id=playlist_id,
        type=PlaylistType.YEARLY,
        name_override=f"Best of {year}",
        associated_year=year,
        associated_month=12,
    )


def _monthly(playlist_id: str, year: int, month: int) -> CuratedPlaylistConfig:
    return CuratedPlaylistConfig(
        spotify_playlist_id=playlist_id,
        type=PlaylistType.MONTHLY,
        name_override=f"{year} {MONTH_NAMES[month - 1]}",
        associated_year=year,
        associated_month=month,
    )


CURATED_PLAYLIST_CONFIGS: tuple[CuratedPlaylistConfig, ...] = (
    # Artist best-of sets
    _artist("7lVJnC9RxgH4G0gd0Y9rGl", "Doe B"),
    _artist("0ZOxI2tN9fkaouL5Z10qfN", "Rylo Rodriguez"),
    _artist("0nH4TC46BaaSkOdagAlHbB", "Trapland Pat"),
    _artist("187JSTloqJ9xh3oShx0BYZ", "Tre Savage"),
    _artist("2RfluDhX9i2sDNQFtdYFvi", "Montana 700"),
    _artist("1vrYvdwa1ziPQyyY6SrqpW", "YFN Lucci"),
    _artist("4hTK8wOhIWZYK5MH79GQH8", "Yak Gotti"),
    _artist("46s6obIkvLrd37k3zFNvpP", "Slimelife Shawty"),
    _artist("5EVPbN0brTN56JFA75cH44", "Johnny Cinco"),
    _artist("37Q9DCMDVSqVOZhAklHHYL", "Hunxho"),
    _artist("7y9nrcjvHCmQuqyOq6JsJq", "Eli Fross"),
    _artist("2OwmVNZ3dJD6PGRrzfxU1i", "Travis Scott"),
    _artist("0kBj7LSWcKrXWOkkt1KIIo", "The Weeknd"),
    _artist("5puJg7hgNxIuw4Sxtw0oTH", "Sleepy Hallow"),
    _artist("6jZy7J1703UQquykK3nCIB", "Ant200"),
    _artist("4xaHubUgct8R1iJ79Rkeoc", "Pooh Shiesty"),
    _artist("2v428ggNc9vmG4QAs41mqF", "Migos"),
    _artist("5NqZnhzN9kvsJgVDayTOMg", "Freddie Gibbs"),
    _artist("0KRO3Gj5FwSFc597FMdXmA", "Shy Glizzy"),
    _artist("3kT2zWV2QtL5k7faDyvJ7g", "Gunna"),
    _artist("2wu1upE1s1ELdOrps4QMiH", "Fat Trel"),
    _artist("48T3easHrYVA8CsQTsOLSV", "21 Savage"),
    _artist("79Zo9NyPcKMMzV87xJDuE1", "Rxalu Loaded"),
    _artist("0QBJpBPnMU5GlNKQRzNpEL", "Eddie Valero"),
    _artist("6cxUtLtHCsno6s7KEZents", "Lil Uzi Vert"),
    _artist("7G5DtUU54TQaOm6RnTzR82", "Lil Reese"),
    _artist("69fluqieJCATWQz86kzlrA", "Young Scooter"),
    _artist("67ornKzLrEp283heSkeiaq", "Yo Gotti"),
    _artist("3g9G8rCHb4prlVCm4QlV85", "Gucci Mane"),
    _artist("5cj8P8uR67BK2tfsOVVIlS", "OMB Peezy"),
    _artist("3B0q6bPRLPmRuFGG7MBgNi", "Hotboii"),
    _artist("6pNEG3cCkM0uTnxtJxrcw6", "A Boogie Wit Da Hoodie"),
    _artist("0tH1IpR7cqO3Qgw52qHKTZ", "Key Glock"),
    _artist("28ddG4J8mDM47zD9VAUOu9", "Pooh Shiesty"),
    _artist("1JetEWmEgc3BDTxvawlLZ5", "Moneybagg Yo"),
    _artist("5D05v19XDTxDKaRhsf1dUK", "Lil Durk"),
    _artist("0evwIXktsCYtHdqukvnEJs", "Young Thug"),
    _artist("3Y0UYOOiVI51iSzSZs1v0k", "Future"),
    _artist("2n9gUatQ71Pv8Fx5hTZNZq", "Polo G"),
    _artist("58hyDlT9913qrL53l7j8Im", "EST Gee"),
    _artist("3HiOOYsZwLLsHSA13W16mI", "Smiley"),
    _artist("7bG1sjaCcWPLZgRNH9usHf", "King Von"),
    _artist("2EsPV2tE11va8SA3Bukd7q", "Don Trip"),
    _artist("7ozuCHFLcfuxmrm7UKnofk", "Starlito"),
    _artist("2jOgjpSxJ3tfOxbhGZJGP8", "Blac Youngsta"),
    _artist("2Y9MLrQmsvUkfwG31TNjBX", "NBA YoungBoy"),
    _artist("0bGbmUaL1XrtAVHBdRPmiR", "Lil Keed"),
    _artist("79vXDRsUTwP8uCPdZFh7r0", "Lil Gotit"),
    _artist("2UxzlQ0YSDRIc4USgdt83v", "42 Dugg"),
    _artist("0IZ7LsHxFGl0nzjJQiq9ew", "Trapperman Dale"),
    _artist("2YBQud5Mo88SZMUR9bZgVE", "Offset"),
    _artist("2S37XVdzk1YvzUPLlB03t6", "Lil Baby"),
    _artist("7lmAE1XUoq8GfA9kOvFLZX", "Young Dolph"),
    _artist("2uIw01hr2xyTthDcIRbgfa", "Drake"),
    _artist("20XLfLepW17ZG6r4zzVQPC", "Money Man"),
    _artist("5xQhGMb5FQouPCGRFtCniS", "Peewee Longway"),
    # Yearly retrospectives
    _yearly("6h8fc4VLzKhVdPYR3RB6Np", 2010),
    _yearly("6WABHoJAwnChtBUCr4vFJj", 2012),
    _yearly("3dGCQGuTZVc0qGi3AtN7Cb", 2013),
    _yearly("27agptQOyI1TpB4XxOr3S6", 2014),
    _yearly("2RjT57kegPUQFjUBkWEpUQ", 2015),
    _yearly("6VxF21D7gK2p6cheFZh8Uv", 2016),
    _yearly("7njxTYEQ27xJPjyXZIcIjw", 2017),
    _yearly("43Rx79pAYvaZ9goVelnHz0", 2018),
    _yearly("7B6agaYPg317C4cDqJ4A4g", 2019),
    _yearly("71P2RSNRRkxnoMnzlDwuTc", 2020),
    _yearly("0eN0nj3aAwOmzyiXUvsr7x", 2021),
    _yearly("2oukZkEKPok3iprucoxVyI", 2022),
    _yearly("5BSzzcDQnOO1tk7fjShAbV", 2023),
    # Monthly compilations
    _monthly("69LRNPhv8kdFSqBKamCn8O", 2022, 11),
    _monthly("5e3XuEUk2zane7Im1LwGIM", 2022, 12),
    _monthly("3GENxWMI2b2opjcc34GIJG", 2023, 1),
    _monthly("6pK7tN41XUmmtehNC4FajJ", 2023, 2),
    _monthly("50UAc8a3bqwUbQ4mtQz7ig", 2023, 3),
    _monthly("7lV2397S32XF29ZlOB7hhp", 2023, 4),
    _monthly("1FDyJylubmE8FA3qaNYTTW", 2023, 5),
    _monthly("5T09esQMaM3ofeYMFnLAfH", 2023, 6),
    _monthly("4h24ns8Ag3Vh89GsWTwGk8", 2023, 7),
    _monthly("7onOujcPyGLjb5TNERZo9R", 2023, 8),
    _monthly("5nsXZq6ZPOXW3XUcFvvYTz", 2023, 9),
    _monthly("5FANSr6wtrTVRaC8AJGFde", 2023, 11),
    _monthly("2qhr8r98Ldl1NXntj5cUU0", 2023, 12),
    _monthly("4QN9lbAqGjcnG9sXTZnYTc", 2024, 1),
    _monthly("5y4F3FxWi8qyTqe2XaoHIZ", 2024, 2),
    _monthly("0vXt8uHLFXuSPkzmdHabFX", 2024, 4),
    _monthly("5CODySQoU5MnvPvZIvsgyp", 2024, 5),
    _monthly("2nhwlkuzHA2e1FFTOBq58L", 2024, 6),
    _monthly("625I0DRvbnUGz7lc0U9f43", 2024, 7),
    _monthly("3IV3VbfThOavPaqvBI30uk", 2024, 8),
    _monthly("3rz16lYfrZabLK0GTQRSNO", 2024, 11),
)
