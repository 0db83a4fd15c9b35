"""Load and save the trained classifier model as JSON.

The model is persisted as the structure produced by ClassifierModel.export().
Loading validates the shape against a Pydantic schema before importing, since
ClassifierModel.import_model() replaces the model wholesale and trusts its
input.

Usage:
    from mailsieve.classifier.model_store import load_model, save_model

    model = load_model(Path("data/spam_model.json"))
    ...
    save_model(model, Path("data/spam_model.json"))
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from mailsieve.classifier.bayes import ClassifierModel
from mailsieve.core.errors import ModelPersistenceError
from mailsieve.core.logging import get_logger

logger = get_logger(__name__)


class TokenCounts(BaseModel):
    """Per-token counts in a saved model."""

    spam_count: int = Field(ge=0)
    ham_count: int = Field(ge=0)


class ModelSnapshot(BaseModel):
    """Schema of a saved classifier model."""

    tokens: list[tuple[str, TokenCounts]] = Field(default_factory=list)
    spam_count: int = Field(default=0, ge=0)
    ham_count: int = Field(default=0, ge=0)


def load_model(path: Path) -> ClassifierModel:
    """Load a saved model, or return an empty one if the file does not exist.

    Args:
        path: JSON file written by save_model()

    Returns:
        ClassifierModel populated from the file

    Raises:
        ModelPersistenceError: If the file cannot be read, is not valid JSON,
            or does not match the saved-model schema
    """
    if not path.exists():
        logger.info("No saved classifier model, starting empty", path=str(path))
        return ClassifierModel()

    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ModelPersistenceError(
            f"Failed to read classifier model {path}: {e}\n"
            "Delete the file to start from an empty model.",
            path=str(path),
        ) from e

    try:
        snapshot = ModelSnapshot.model_validate(raw)
    except ValidationError as e:
        raise ModelPersistenceError(
            f"Classifier model {path} has an unexpected shape:\n{e}",
            path=str(path),
        ) from e

    model = ClassifierModel.from_export(snapshot.model_dump())
    logger.info(
        "Classifier model loaded",
        path=str(path),
        tokens=len(model.tokens),
        spam_count=model.spam_count,
        ham_count=model.ham_count,
    )
    return model


def save_model(model: ClassifierModel, path: Path) -> None:
    """Write the model atomically (temp file + rename).

    Args:
        model: Model to persist
        path: Destination JSON file; parent directories are created

    Raises:
        ModelPersistenceError: If the file cannot be written
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(model.export(), f)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise ModelPersistenceError(
            f"Failed to write classifier model {path}: {e}",
            path=str(path),
        ) from e

    logger.info("Classifier model saved", path=str(path), tokens=len(model.tokens))
