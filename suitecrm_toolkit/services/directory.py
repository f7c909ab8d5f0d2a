"""Per-client lookup of module services by ModuleKind."""

from ..core.errors import RecordNotFoundError
from ..core.models import ModuleKind
from ..core.registry import get_module_spec
from .base import ModuleService


class ServiceDirectory:
    """
    Builds and caches one ModuleService per module for a client.

    Cross-module operations (lead conversion, target checks, ...) go
    through ``records(kind)`` so the target module is always chosen by
    enum, never by a computed name.
    """

    def __init__(self, api):
        self.api = api
        self._services: dict[ModuleKind, ModuleService] = {}

    def records(self, kind: ModuleKind) -> ModuleService:
        if kind not in self._services:
            self._services[kind] = ModuleService(self.api, get_module_spec(kind))
        return self._services[kind]

    def exists(self, kind: ModuleKind, record_id: str) -> bool:
        """True if a live record with ``record_id`` exists in ``kind``."""
        try:
            return self.records(kind).find_by_id(record_id, ["id"]) is not None
        except RecordNotFoundError:
            return False
