"""
Session persistence for LinkMap.

SessionStore projects the live AnnotationManager state into a versioned
session record, validates and restores such records, and autosaves through
a debounced timer: every qualifying mutation re-arms the timer, and a save
happens only after AUTOSAVE_DELAY_MS of quiet.

The store is the only component that touches the session key in the
backend. Records are written and read whole.
"""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from linkmap.annotation_manager import AnnotationManager
from linkmap.constants import (
    AUTOSAVE_DELAY_MS,
    MIN_IMAGE_PAYLOAD_LENGTH,
    SESSION_KEY,
    SESSION_VERSION,
)
from linkmap.imaging import ImageDecodeError, decode_data_url, decode_image
from linkmap.models import Marker, Settings, Waypoint
from linkmap.scheduling import Debouncer
from linkmap.storage.protocol import SessionBackend, StorageError

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionStore:
    """
    Serializes, validates, restores and autosaves the session.

    Status messages for the UI are kept in `status`; no operation raises
    to the caller.
    """

    def __init__(self, manager: AnnotationManager, backend: SessionBackend,
                 key: str = SESSION_KEY, autosave_delay_ms: float = AUTOSAVE_DELAY_MS,
                 clock: Callable[[], float] = time.monotonic,
                 timestamp: Callable[[], str] = _utc_timestamp):
        self.manager = manager
        self.backend = backend
        self.key = key
        self.status: str = ""
        self._timestamp = timestamp
        self._autosave = Debouncer(autosave_delay_ms, self.save, clock=clock)
        manager.on_change(self._on_change)

    # --- Record projection ---

    def serialize(self) -> Optional[Dict[str, Any]]:
        """
        Snapshot the current state as a session record.

        Returns:
            The record, or None when no image was ever loaded (nothing to save).
            While a new image is decoding, the current image and annotations
            are still the state to persist.
        """
        manager = self.manager
        if manager.image is None:
            return None
        return {
            "version": SESSION_VERSION,
            "saved_at": self._timestamp(),
            "image_name": manager.image.name,
            "image_data": manager.image.data_url,
            "markers": [m.to_dict() for m in manager.markers],
            "waypoints": [w.to_dict() for w in manager.waypoints],
            "settings": manager.settings.to_dict(),
        }

    @staticmethod
    def validate(raw: Any) -> Optional[Dict[str, Any]]:
        """
        Check that raw input is a supported session record.

        Args:
            raw: JSON text (str or bytes) or an already parsed dict

        Returns:
            The record dict, or None if it is not a valid session. Never raises.
        """
        record = raw
        if isinstance(raw, (str, bytes, bytearray)):
            try:
                record = json.loads(raw)
            except (ValueError, TypeError, RecursionError) as e:
                logger.debug(f"Rejected session: not valid JSON ({e})")
                return None

        if not isinstance(record, dict):
            logger.debug("Rejected session: not an object")
            return None

        version = record.get("version")
        if type(version) is not int or version != SESSION_VERSION:
            logger.debug(f"Rejected session: unsupported version {version!r}")
            return None

        image_data = record.get("image_data")
        if not isinstance(image_data, str) or len(image_data) < MIN_IMAGE_PAYLOAD_LENGTH:
            logger.debug("Rejected session: missing or truncated image payload")
            return None

        if not isinstance(record.get("markers"), list) or not isinstance(record.get("waypoints"), list):
            logger.debug("Rejected session: markers/waypoints are not lists")
            return None

        return record

    def restore(self, record: Dict[str, Any]) -> bool:
        """
        Replace the in-memory state with a validated record.

        The image is decoded first; if that fails nothing changes.
        Hover, selection and drag state are cleared by the resulting change.

        Returns:
            True if the state was replaced
        """
        try:
            data, _ = decode_data_url(record["image_data"])
            image = decode_image(data, name=str(record.get("image_name") or "session image"))
        except ImageDecodeError as e:
            logger.warning(f"Session image could not be decoded: {e}")
            self.status = "Saved session image could not be decoded"
            return False

        markers = [m for m in (Marker.from_dict(d) for d in record["markers"]) if m is not None]
        waypoints = [w for w in (Waypoint.from_dict(d) for d in record["waypoints"]) if w is not None]
        settings = Settings.from_dict(record.get("settings"))

        self.manager.replace_all(image, markers, waypoints, settings)
        self.status = "Session restored"
        logger.info(f"Restored session: {len(markers)} markers, {len(waypoints)} waypoints")
        return True

    # --- Durable slot ---

    def save(self) -> bool:
        """
        Write the current state to the backend. Best effort.

        Returns:
            True if the record was written
        """
        self._autosave.cancel()
        record = self.serialize()
        if record is None:
            self.status = "Nothing to save"
            return False
        try:
            self.backend.write(self.key, json.dumps(record))
        except (StorageError, TypeError, ValueError) as e:
            logger.warning(f"Session save failed: {e}")
            self.status = f"Save failed: {e}"
            return False
        self.status = f"Saved at {datetime.now().strftime('%H:%M:%S')}"
        logger.debug(f"Session saved to {self.backend.backend_type} backend")
        return True

    def load(self) -> Optional[Dict[str, Any]]:
        """Read and validate the stored record. Returns None if there is none."""
        try:
            raw = self.backend.read(self.key)
        except StorageError as e:
            logger.warning(f"Session read failed: {e}")
            return None
        if raw is None:
            return None
        return self.validate(raw)

    def has_saved_session(self) -> bool:
        try:
            return self.backend.exists(self.key)
        except StorageError:
            return False

    def restore_saved(self) -> bool:
        """Restore the stored session if a valid one exists."""
        record = self.load()
        if record is None:
            return False
        return self.restore(record)

    def clear(self) -> None:
        """Delete the stored session and cancel a pending autosave."""
        self._autosave.cancel()
        try:
            self.backend.delete(self.key)
        except StorageError as e:
            logger.warning(f"Session delete failed: {e}")
            self.status = f"Clear failed: {e}"
            return
        self.status = "Saved session cleared"
        logger.info("Cleared saved session")

    # --- Export / import ---

    def export_json(self) -> Optional[str]:
        """Return the current session record as an indented JSON document."""
        record = self.serialize()
        if record is None:
            self.status = "Nothing to save"
            return None
        return json.dumps(record, indent=2)

    def import_json(self, raw: Any) -> bool:
        """Validate and restore a session document (e.g. an uploaded export)."""
        record = self.validate(raw)
        if record is None:
            self.status = "Not a valid session file"
            return False
        return self.restore(record)

    # --- Autosave ---

    @property
    def autosave_pending(self) -> bool:
        return self._autosave.pending

    def schedule_autosave(self) -> None:
        """Re-arm the autosave timer (debounce)."""
        if self.manager.image is not None:
            self._autosave.trigger()
            logger.debug("Autosave scheduled")

    def tick(self) -> bool:
        """Drive the autosave timer; returns True if a save was attempted."""
        return self._autosave.poll()

    def flush(self) -> bool:
        """Save now if an autosave is pending."""
        return self._autosave.flush()

    def _on_change(self, reason: str) -> None:
        self.schedule_autosave()
