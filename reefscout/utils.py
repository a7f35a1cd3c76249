"""Form value normalization and JSON document files."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar('T', bound=BaseModel)
logger = logging.getLogger('reefscout.utils')


def as_list(value: Any) -> list:
    """
    Coerce a scalar-or-array form value into a list.

    Older documents stored single-choice answers as bare strings; newer
    ones store lists. ``None`` and empty strings mean "nothing selected".

    Example:
        as_list('collectsFromReef')   # ['collectsFromReef']
        as_list(['L', 'M'])           # ['L', 'M']
        as_list(None)                 # []
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [v for v in value if v is not None and v != '']
    if isinstance(value, (set, frozenset)):
        return sorted(v for v in value if v is not None and v != '')
    return [value]


def _to_jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode='json')
    if isinstance(data, list):
        return [_to_jsonable(item) for item in data]
    return data


def load_json(path: Path | str, schema: type[T] | None = None) -> Any | T:
    """
    Read a JSON document, optionally validating it.

    Raises:
        FileNotFoundError: No document at ``path``
        json.JSONDecodeError: The file is not valid JSON
        ValueError: The document does not match ``schema``

    Example:
        from reefscout.schemas import AllianceTableDoc
        table = load_json('data/alliances/2025txcha.json', schema=AllianceTableDoc)
    """
    path = Path(path)
    logger.debug(f'Reading {path}')

    with open(path, encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f'{path} is not valid JSON: {e.msg} (line {e.lineno})')
            raise

    if schema is None:
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise ValueError(f'{path} does not match {schema.__name__}:\n{e}') from e


def save_json(path: Path | str, data: Any, indent: int = 2) -> None:
    """
    Write a JSON document, replacing any existing file atomically.

    Pydantic models (and lists of them) are dumped in JSON mode. The data
    goes to a temporary file beside the target which is then renamed over
    it, so concurrent readers see either the old or the new document.

    Raises:
        TypeError: ``data`` is not JSON-serializable
        OSError: The directory or file cannot be written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f'Writing {path}')

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(_to_jsonable(data), f, indent=indent, ensure_ascii=False)
        os.replace(tmp_name, path)
    except (TypeError, OSError) as e:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        logger.error(f'Could not write {path}: {e}')
        raise
