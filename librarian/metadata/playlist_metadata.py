"""Playlist metadata generation, keyword fallback and batch regeneration.

Batches run one playlist at a time with a fixed pause between provider
calls; a failing playlist is recorded in the summary and the batch goes on.
"""
import time
from typing import Callable, Dict, List, Optional

from ..app.config import Config
from ..app.gateway import TextCompletionGateway, get_gateway
from ..app.prompt_builder import PromptBuilder
from ..data.catalog_store import PlaylistStore
from ..schemas.io_models import PlaylistBatchItem, PlaylistBatchResponse, PlaylistMetadataRequest
from ..schemas.metadata_models import PlaylistMetadata, PlaylistRecord
from ..utils.logger import get_logger
from .json_repair import extract_fields, parse_json_object

logger = get_logger()

ARRAY_CAPS: Dict[str, int] = {
    "historical_names": 3,
    "modern_equivalents": 2,
    "key_themes": 3,
    "geographical_focus": 2,
    "keywords": 5,
}
STRING_FIELDS = ("time_period", "accuracy_reasoning")

FALLBACK_THEMES: Dict[str, List[str]] = {
    "sejarah": ["sejarah", "historis", "masa lalu"],
    "biografi": ["biografi", "tokoh", "riwayat hidup"],
    "sumatra": ["sumatra", "sumatera", "regional"],
    "tni": ["militer", "tentara", "perang"],
    "kereta": ["transportasi", "kereta", "perhubungan"],
    "budaya": ["budaya", "seni", "tradisi"],
}
DEFAULT_THEME = "umum"


class NoModeSelectedError(ValueError):
    pass


def sanitize_list(value, cap: int) -> List[str]:
    """Strings only, trimmed and lowercased, empties dropped, at most ``cap`` items."""
    if not isinstance(value, list):
        return []
    cleaned = [item.strip().lower() for item in value if isinstance(item, str) and item.strip()]
    return cleaned[:cap]


class PlaylistMetadataGenerator:
    def __init__(self, gateway: TextCompletionGateway = None, builder: PromptBuilder = None):
        self._gateway = gateway
        self.builder = builder or PromptBuilder()

    @property
    def gateway(self) -> TextCompletionGateway:
        if self._gateway is None:
            self._gateway = get_gateway()
        return self._gateway

    def generate(self, playlist: PlaylistRecord) -> PlaylistMetadata:
        prompt = self.builder.build_playlist_prompt(playlist.name, playlist.description)
        text = self.gateway.complete(prompt, max_output_tokens=600, temperature=0.1)
        if not text:
            logger.info(f"[PLAYLIST] No AI response for '{playlist.name}', using keyword fallback")
            return self.fallback(playlist)

        try:
            return self.parse(text, playlist)
        except ValueError as e:
            logger.warning(f"[PLAYLIST] Could not parse AI metadata for '{playlist.name}': {e}")

        partial = self.parse_truncated(text, playlist)
        if partial is not None:
            return partial
        logger.info(f"[PLAYLIST] Nothing extractable for '{playlist.name}', using keyword fallback")
        return self.fallback(playlist)

    def parse(self, text: str, playlist: PlaylistRecord) -> PlaylistMetadata:
        """
        Raises:
            ValueError: the response holds no parseable JSON object
        """
        data = parse_json_object(text)
        values = {name: sanitize_list(data.get(name), cap) for name, cap in ARRAY_CAPS.items()}
        if not any(values.values()):
            raise ValueError("Response JSON has no metadata fields")
        return PlaylistMetadata(
            **values,
            time_period=str(data.get("time_period") or "").strip(),
            accuracy_reasoning=(str(data.get("accuracy_reasoning") or "").strip()
                                or f'Metadata AI untuk "{playlist.name}"'),
        )

    def parse_truncated(self, text: str, playlist: PlaylistRecord) -> Optional[PlaylistMetadata]:
        fields = extract_fields(text, ARRAY_CAPS.keys(), STRING_FIELDS)
        values = {name: sanitize_list(fields[name], cap) for name, cap in ARRAY_CAPS.items()}
        if not any(values.values()):
            return None
        logger.info(f"[PLAYLIST] Recovered partial metadata for '{playlist.name}'")
        return PlaylistMetadata(
            **values,
            time_period=fields["time_period"].strip(),
            accuracy_reasoning=f'Metadata AI parsial untuk "{playlist.name}" (respons terpotong)',
            is_partial=True,
        )

    @staticmethod
    def fallback(playlist: PlaylistRecord) -> PlaylistMetadata:
        name = (playlist.name or "").lower()
        themes: List[str] = []
        for key, words in FALLBACK_THEMES.items():
            if key in name:
                themes.extend(words)
        return PlaylistMetadata(
            key_themes=(themes or [DEFAULT_THEME])[:ARRAY_CAPS["key_themes"]],
            keywords=themes[:ARRAY_CAPS["keywords"]],
            accuracy_reasoning="Metadata dasar, akan ditingkatkan dengan analisis AI",
            is_fallback=True,
        )


class PlaylistMetadataService:
    def __init__(self, store: PlaylistStore = None,
                 generator: PlaylistMetadataGenerator = None,
                 batch_delay: float = None,
                 upgrade_delay: float = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.store = store or PlaylistStore()
        self.generator = generator or PlaylistMetadataGenerator()
        self.batch_delay = Config.PLAYLIST_BATCH_DELAY_SECONDS if batch_delay is None else batch_delay
        self.upgrade_delay = Config.PLAYLIST_UPGRADE_DELAY_SECONDS if upgrade_delay is None else upgrade_delay
        self._sleep = sleep

    def handle(self, request: PlaylistMetadataRequest) -> PlaylistBatchResponse:
        """
        Dispatch on the request mode: upgradeBasic, fillMissing, generateAll, playlistId.

        Raises:
            NoModeSelectedError: no mode flag and no playlist id
            PlaylistNotFoundError: single-playlist mode with an unknown id
        """
        if request.upgrade_basic:
            return self.run_batch(self.store.list_fallback(), self.upgrade_delay, "Upgrade metadata dasar")
        if request.fill_missing:
            return self.run_batch(self.store.list_missing(), self.batch_delay, "Lengkapi metadata")
        if request.generate_all:
            return self.run_batch(self.store.list_all(), self.batch_delay, "Generate semua metadata")
        if request.playlist_id:
            return self.generate_one(request.playlist_id)
        raise NoModeSelectedError(
            "Provide playlistId, or set one of generateAll, fillMissing, upgradeBasic")

    def generate_and_store(self, playlist: PlaylistRecord) -> PlaylistMetadata:
        metadata = self.generator.generate(playlist)
        metadata = metadata.model_copy(update={"version": playlist.metadata_version + 1})
        self.store.save_metadata(playlist.id, metadata)
        logger.info(f"[PLAYLIST] Stored metadata v{metadata.version} for '{playlist.name}'"
                    f"{' (fallback)' if metadata.is_fallback else ''}")
        return metadata

    def generate_one(self, playlist_id: str) -> PlaylistBatchResponse:
        playlist = self.store.get(playlist_id)
        self.generate_and_store(playlist)
        return PlaylistBatchResponse(
            success=True,
            message=f'Metadata untuk "{playlist.name}" berhasil dibuat',
            data=[PlaylistBatchItem(playlist_id=playlist.id, playlist_name=playlist.name, success=True)],
        )

    def run_batch(self, playlists: List[PlaylistRecord], delay: float, label: str) -> PlaylistBatchResponse:
        logger.info(f"[PLAYLIST] {label}: {len(playlists)} playlist(s)")
        results: List[PlaylistBatchItem] = []
        for index, playlist in enumerate(playlists):
            if index > 0 and delay > 0:
                self._sleep(delay)
            try:
                self.generate_and_store(playlist)
                results.append(PlaylistBatchItem(
                    playlist_id=playlist.id, playlist_name=playlist.name, success=True))
            except Exception as e:
                logger.error(f"[PLAYLIST] Failed for '{playlist.name}': {e}", exc_info=True)
                results.append(PlaylistBatchItem(
                    playlist_id=playlist.id, playlist_name=playlist.name, success=False, error=str(e)))

        succeeded = sum(1 for item in results if item.success)
        return PlaylistBatchResponse(
            success=True,
            message=f"{label}: {succeeded}/{len(results)} playlist berhasil diproses",
            data=results,
        )
