"""In-memory Spotify stand-in and payload builders for sync engine tests."""

from typing import Any

from traptally.domain.exceptions import EntityNotFoundException
from traptally.domain.ports import ISpotifyClient


def make_artist(artist_id: str, name: str) -> dict[str, Any]:
    return {
        "id": artist_id,
        "name": name,
        "external_urls": {"spotify": f"https://open.spotify.com/artist/{artist_id}"},
    }


def make_track(
    track_id: str | None,
    title: str,
    artists: list[dict[str, Any]],
    album_id: str | None = "album-1",
    release_date: str | None = "2023-05-12",
    precision: str | None = "day",
    with_image: bool = True,
    is_local: bool = False,
) -> dict[str, Any]:
    album: dict[str, Any] = {
        "id": album_id,
        "name": f"Album {album_id}",
        "images": (
            [{"url": f"https://i.scdn.co/image/{album_id}", "height": 640, "width": 640}]
            if with_image
            else []
        ),
        "release_date": release_date,
        "release_date_precision": precision,
        "external_urls": {"spotify": f"https://open.spotify.com/album/{album_id}"},
    }
    return {
        "id": track_id,
        "name": title,
        "artists": artists,
        "album": album,
        "external_urls": (
            {"spotify": f"https://open.spotify.com/track/{track_id}"} if track_id else {}
        ),
        "is_local": is_local,
    }


def make_playlist(
    playlist_id: str,
    name: str,
    tracks: list[dict[str, Any] | None],
    description: str | None = "Curated",
    with_image: bool = True,
) -> dict[str, Any]:
    return {
        "id": playlist_id,
        "name": name,
        "description": description,
        "images": (
            [{"url": f"https://mosaic.scdn.co/{playlist_id}"}] if with_image else []
        ),
        "external_urls": {"spotify": f"https://open.spotify.com/playlist/{playlist_id}"},
        "owner": {"display_name": "TrapTally"},
        "tracks": {"items": [{"track": t} for t in tracks], "next": None},
    }


class FakeSpotifyClient(ISpotifyClient):
    """Scriptable ISpotifyClient.

    playlists maps a playlist id to a payload, an exception instance, or a list
    of those consumed one per call. Unknown ids raise EntityNotFoundException.
    """

    def __init__(self) -> None:
        self.playlists: dict[str, Any] = {}
        self.artists: dict[str, dict[str, Any]] = {}
        self.tracks: dict[str, dict[str, Any]] = {}
        self.refresh_responses: list[Any] = []
        self.exchange_response: Any = {
            "access_token": "access-from-code",
            "refresh_token": "refresh-from-code",
            "expires_in": 3600,
            "token_type": "Bearer",
            "scope": "playlist-read-private",
        }
        self.playlist_calls: list[tuple[str, str]] = []
        self.refresh_calls: list[str] = []
        self.artist_batches: list[list[str]] = []
        self.track_batches: list[list[str]] = []
        self.track_errors: list[Exception] = []

    @staticmethod
    def _resolve(value: Any) -> Any:
        if isinstance(value, BaseException):
            raise value
        return value

    async def get_authorization_url(self, state: str, code_verifier: str) -> str:
        return f"https://accounts.spotify.com/authorize?state={state}"

    async def exchange_code(self, code: str, code_verifier: str) -> dict[str, Any]:
        return self._resolve(self.exchange_response)

    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        self.refresh_calls.append(refresh_token)
        if not self.refresh_responses:
            return {"access_token": f"refreshed-{len(self.refresh_calls)}", "expires_in": 3600}
        return self._resolve(self.refresh_responses.pop(0))

    async def get_playlist(self, playlist_id: str, access_token: str) -> dict[str, Any]:
        self.playlist_calls.append((playlist_id, access_token))
        if playlist_id not in self.playlists:
            raise EntityNotFoundException("Playlist", playlist_id)
        value = self.playlists[playlist_id]
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        return self._resolve(value)

    async def search_artist(
        self, query: str, access_token: str, limit: int = 20
    ) -> list[dict[str, Any]]:
        return [a for a in self.artists.values() if query.lower() in a["name"].lower()]

    async def get_several_artists(
        self, artist_ids: list[str], access_token: str
    ) -> list[dict[str, Any]]:
        self.artist_batches.append(list(artist_ids))
        return [self.artists[a] for a in artist_ids if a in self.artists]

    async def get_tracks(
        self, track_ids: list[str], access_token: str
    ) -> list[dict[str, Any]]:
        self.track_batches.append(list(track_ids))
        if self.track_errors:
            raise self.track_errors.pop(0)
        return [self.tracks[t] for t in track_ids if t in self.tracks]
