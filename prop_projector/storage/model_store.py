"""Persistence for trained regression models."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote

from ..models.regression import ModelKey, RegressionModel

logger = logging.getLogger(__name__)


class ModelStore(ABC):
    """
    Keyed storage of RegressionModels.

    Keys are ``(player_scope, stat_type, season)``. Saving an existing key
    replaces the stored model (last write wins). Stores do no locking;
    concurrent trainers for one key must be serialized by the caller.
    """

    @abstractmethod
    def save_model(self, model: RegressionModel) -> None:
        """Insert or replace the model under its key."""
        pass

    @abstractmethod
    def load_model(self, key: ModelKey) -> Optional[RegressionModel]:
        """Return the stored model, or None on a miss."""
        pass

    @abstractmethod
    def model_exists(self, key: ModelKey) -> bool:
        """Check for a stored model without loading it."""
        pass

    @abstractmethod
    def list_models(self, player_scope: Optional[str] = None) -> List[ModelKey]:
        """Keys of stored models, optionally restricted to one scope."""
        pass


class InMemoryModelStore(ModelStore):
    """Dict-backed store for tests and single-process use."""

    def __init__(self):
        self._models: Dict[ModelKey, dict] = {}

    def save_model(self, model: RegressionModel) -> None:
        # Stored as a document so callers cannot mutate the saved copy.
        self._models[model.key] = model.to_dict()

    def load_model(self, key: ModelKey) -> Optional[RegressionModel]:
        data = self._models.get(ModelKey.create(*key))
        return RegressionModel.from_dict(data) if data is not None else None

    def model_exists(self, key: ModelKey) -> bool:
        return ModelKey.create(*key) in self._models

    def list_models(self, player_scope: Optional[str] = None) -> List[ModelKey]:
        keys = [k for k in self._models if player_scope is None or k.player_scope == player_scope]
        return sorted(keys, key=str)


class JsonModelStore(ModelStore):
    """
    One JSON document per model under a directory.

    File names are ``<scope>__<stat>__<season>.model.json`` with each part
    percent-encoded (``_`` included), so distinct keys never share a file.
    Documents whose stored key differs from the requested one are treated
    as misses. Writes go to a temporary file in the same directory and are
    moved into place with ``os.replace``, so readers never see a partial
    document. Other JSON files in the directory are ignored.
    """

    SUFFIX = ".model.json"

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: ModelKey) -> Path:
        key = ModelKey.create(*key)
        name = "__".join(_encode(part) for part in (key.player_scope, key.stat_type.value, key.season))
        return self.directory / f"{name}{self.SUFFIX}"

    def _read(self, key: ModelKey) -> Optional[dict]:
        key = ModelKey.create(*key)
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, "r") as f:
            data = json.load(f)
        if _document_key(data) != key:
            logger.warning("Model file %s holds %s, not %s; treating as missing",
                           path, _document_key(data), key)
            return None
        return data

    def save_model(self, model: RegressionModel) -> None:
        path = self._path(model.key)
        fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", suffix=self.SUFFIX, dir=self.directory)
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(model.to_dict(), f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise
        logger.debug("Saved model %s to %s", model.key, path)

    def load_model(self, key: ModelKey) -> Optional[RegressionModel]:
        data = self._read(key)
        return RegressionModel.from_dict(data) if data is not None else None

    def model_exists(self, key: ModelKey) -> bool:
        return self._read(key) is not None

    def list_models(self, player_scope: Optional[str] = None) -> List[ModelKey]:
        keys = []
        for path in sorted(self.directory.glob(f"*{self.SUFFIX}")):
            if path.name.startswith(".tmp-"):
                continue
            with open(path, "r") as f:
                key = _document_key(json.load(f))
            if key is None:
                logger.warning("Skipping %s: not a model document", path)
                continue
            if player_scope is None or key.player_scope == player_scope:
                keys.append(key)
        return sorted(keys, key=str)


def _encode(part: str) -> str:
    """Reversible, separator-free encoding of one key component."""
    return quote(str(part), safe="").replace("_", "%5F")


def _document_key(data) -> Optional[ModelKey]:
    if not isinstance(data, dict):
        return None
    try:
        return ModelKey.create(data["player_scope"], data["stat_type"], data["season"])
    except (KeyError, ValueError):
        return None
