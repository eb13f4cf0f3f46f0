from __future__ import annotations


class ProspectNotFound(LookupError):
    """No prospect matches the requested identifier."""

    def __init__(self, prospect_id: str) -> None:
        super().__init__(f"Prospect {prospect_id!r} not found")
        self.prospect_id = prospect_id


class UpstreamError(RuntimeError):
    """An external text or speech service failed or answered with an unexpected shape."""
