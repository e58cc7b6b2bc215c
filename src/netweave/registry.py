from __future__ import annotations

import json
import logging

from typing import Any, Dict

from netweave.capabilities import FileReader, InMemoryKeyValueStore, KeyValueStore, LocalFileReader, MimeLookup, StdlibMimeLookup
from netweave.errors import UnknownModelError
from netweave.network_model import NetworkModel
from netweave.settings import Settings, get_settings
from netweave.signals import model_updated_signal


logger = logging.getLogger(__name__)


class ModelRegistry:
    """Holds every network model, tracks the current one and persists them all to a key-value store.

    Models are saved whenever one of them announces an update; the whole collection
    lives as one JSON document under `settings.persistence.storage_key`.
    """

    def __init__(
        self,
        storage: KeyValueStore | None = None,
        file_reader: FileReader | None = None,
        mime_lookup: MimeLookup | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.storage: KeyValueStore = storage if storage is not None else InMemoryKeyValueStore()
        self.file_reader: FileReader = file_reader or LocalFileReader()
        self.mime_lookup: MimeLookup = mime_lookup or StdlibMimeLookup()
        self.models: Dict[str, NetworkModel] = {}
        self._current_model_id: str | None = None
        self._next_model_id = 1

        model_updated_signal.connect(self._on_model_updated)
        self._load()

    # ===================================================================
    # Persistence
    # ===================================================================

    def _load(self) -> None:
        stored = self.storage.get_item(self.settings.persistence.storage_key)
        if not stored:
            return
        for model_id, raw in json.loads(stored).items():
            self.models[model_id] = NetworkModel.from_raw_object(raw, registry=self)
        logger.info("Loaded %d models from storage", len(self.models))

    def save(self) -> None:
        raw: Dict[str, Any] = {model_id: model.to_raw_object() for model_id, model in self.models.items()}
        self.storage.set_item(self.settings.persistence.storage_key, json.dumps(raw))
        logger.debug("Saved %d models", len(raw))

    def _on_model_updated(self, sender: Any, **kwargs: Any) -> None:
        if isinstance(sender, NetworkModel) and self.models.get(sender.model_id) is sender:
            self.save()

    # ===================================================================
    # Current model
    # ===================================================================

    @property
    def current_model(self) -> NetworkModel | None:
        if self._current_model_id is None:
            return None
        return self.models.get(self._current_model_id)

    @current_model.setter
    def current_model(self, model: NetworkModel | None) -> None:
        self._current_model_id = model.model_id if model is not None else None

    def close_current_model(self) -> None:
        self._current_model_id = None

    # ===================================================================
    # Lifecycle
    # ===================================================================

    def create_model(self, model_id: str | None = None, name: str | None = None, **options: Any) -> NetworkModel:
        """Create, register and select a new model; ids default to `model1`, `model2`, ..."""
        while model_id is None or model_id in self.models:
            model_id = f"model{self._next_model_id}"
            self._next_model_id += 1
        model = NetworkModel(model_id=model_id, name=name, **options)
        model.registry = self
        self.models[model_id] = model
        self.current_model = model
        self.save()
        logger.info("Created model %s", model_id)
        return model

    def delete_model(self, model_id: str | None = None) -> None:
        model_id = model_id or self._current_model_id
        if model_id is None or model_id not in self.models:
            raise UnknownModelError(f"Can't delete non-existent model: {model_id}")
        model = self.models.pop(model_id)
        model.flush_updates()
        if self._current_model_id == model_id:
            self._current_model_id = None
        self.save()
        logger.info("Deleted model %s", model_id)

    def delete_all_models(self) -> None:
        self.models = {}
        self._current_model_id = None
        self.save()
