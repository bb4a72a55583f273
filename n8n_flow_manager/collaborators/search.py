from __future__ import annotations

from ..errors import CapabilityNotImplemented


class UnavailableSearch:
    """Placeholder for external workflow template search.

    No search backend is configured, so every query fails with
    :class:`CapabilityNotImplemented`. Pass any object with an async
    ``search(query)`` returning ``{"query": ..., "results": [...]}`` to the
    engine to enable it.
    """

    async def search(self, query: str) -> dict:
        raise CapabilityNotImplemented(
            "workflow search is not configured",
            {"query": query, "hint": "provide a CapabilitySearch implementation"},
        )


__all__ = ["UnavailableSearch"]
