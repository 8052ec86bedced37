"""Race-day credential rendering.

The credential payload is rendered as a QR code image and kept in the
project's default file storage. Rendering is deterministic for a payload,
so a retried allocation reuses the file written by an earlier attempt.
"""

import hashlib
import io
import json
from abc import ABC, abstractmethod

import qrcode
from django.core.files.base import ContentFile
from django.core.files.storage import Storage, default_storage

from registrations.domain import EventId, RegistrationId


def credential_payload(
    registration_id: RegistrationId, event_id: EventId, bib_number: str, runner_name: str
) -> str:
    """Return the canonical JSON form of a credential payload."""
    return json.dumps(
        {
            "bibNumber": bib_number,
            "eventId": str(event_id),
            "registrationId": str(registration_id),
            "runnerName": runner_name,
        },
        sort_keys=True,
        separators=(",", ":"),
    )


class CredentialRenderer(ABC):
    @abstractmethod
    def render(self, payload: str) -> str:
        """Render a payload to a scannable image and return its URL."""
        ...


class QrCodeRenderer(CredentialRenderer):
    """Writes QR code PNGs through Django's storage API."""

    def __init__(self, storage: Storage | None = None, directory: str = "credentials") -> None:
        self._storage = storage or default_storage
        self._directory = directory

    def render(self, payload: str) -> str:
        name = self._name_for(payload)
        if not self._storage.exists(name):
            image = qrcode.make(payload, border=2, box_size=10)
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
            name = self._storage.save(name, ContentFile(buffer.getvalue()))
        return self._storage.url(name)

    def _name_for(self, payload: str) -> str:
        registration_id = json.loads(payload)["registrationId"]
        digest = hashlib.sha256(payload.encode()).hexdigest()[:16]
        return f"{self._directory}/{registration_id}-{digest}.png"
