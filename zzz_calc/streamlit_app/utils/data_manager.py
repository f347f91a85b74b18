"""
Data manager for saving, loading, exporting and importing builds as JSON.
The local save slot is a single JSON file under the data directory.
"""
import os
import re
import json
import logging
from typing import Dict, Any, Optional, Tuple, Union

from zzz_calc.core.stats import Inputs
from zzz_calc.marginal import MarginalAppliedStore

logger = logging.getLogger(__name__)

# Path to the save directory (override with ZZZ_CALC_DATA_DIR)
DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")
DATA_DIR_ENV = "ZZZ_CALC_DATA_DIR"

SAVE_FILE_NAME = "zzz_calc_save_v3.json"

# Uploads above this size are rejected before parsing
MAX_IMPORT_BYTES = 1_000_000

DEFAULT_FILE_NAME = "zzz_build"
MAX_FILE_NAME_LENGTH = 60

ERR_TOO_LARGE = "JSON file is too large."
ERR_INVALID_JSON = "Invalid JSON."
ERR_READ_FAILED = "Failed to read file."
ERR_NOT_OBJECT = "JSON must contain an object."


def get_data_dir() -> str:
    """Directory holding the save file."""
    return os.environ.get(DATA_DIR_ENV) or DATA_DIR


def _get_save_file() -> str:
    """Get path to the save file."""
    data_dir = get_data_dir()
    os.makedirs(data_dir, exist_ok=True)
    return os.path.join(data_dir, SAVE_FILE_NAME)


# =============================================================================
# DOCUMENT
# =============================================================================

def build_export_data(inputs: Inputs, store: Optional[MarginalAppliedStore] = None) -> Dict[str, Any]:
    """
    Persisted document for a build.

    Overrides come only from `store`; without one the document has none.
    """
    data = inputs.to_dict()
    applied = store.clone_for_persistence() if store is not None else {}
    data["marginal"] = {"customApplied": applied}
    return data


def apply_build_data(data: Any, store: Optional[MarginalAppliedStore] = None) -> Inputs:
    """Parse a document into Inputs and reload `store` from it."""
    inputs = Inputs.from_dict(data)
    if store is not None:
        store.load_from_data(data)
    return inputs


# =============================================================================
# LOCAL SAVE SLOT
# =============================================================================

def has_saved_build() -> bool:
    """Check if a build has been saved."""
    return os.path.exists(os.path.join(get_data_dir(), SAVE_FILE_NAME))


def save_build(inputs: Inputs, store: Optional[MarginalAppliedStore] = None) -> bool:
    """Write the build to the save file."""
    try:
        filepath = _get_save_file()
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(build_export_data(inputs, store), f)
        logger.info("Saved build to %s", filepath)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error("Error saving build: %s", e)
        return False


def load_saved_build() -> Optional[Dict[str, Any]]:
    """
    Read the saved document.
    Returns None when nothing is saved or the file is unreadable.
    """
    filepath = os.path.join(get_data_dir(), SAVE_FILE_NAME)
    if not os.path.exists(filepath):
        return None

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error("Error loading saved build: %s", e)
        return None

    if not isinstance(data, dict):
        logger.warning("Ignoring saved build: not a JSON object")
        return None
    return data


def delete_saved_build() -> bool:
    """Delete the save file."""
    filepath = os.path.join(get_data_dir(), SAVE_FILE_NAME)
    if os.path.exists(filepath):
        os.remove(filepath)
        return True
    return False


# =============================================================================
# EXPORT / IMPORT
# =============================================================================

def safe_file_name(name: Optional[str]) -> str:
    """
    Download file stem from a build name.

    Keeps letters, digits, spaces, '_' and '-', turns whitespace runs into
    '_' and caps the length. Falls back to "zzz_build".
    """
    cleaned = re.sub(r"[^a-z0-9 _\-]+", "", name or DEFAULT_FILE_NAME, flags=re.IGNORECASE)
    cleaned = re.sub(r"\s+", "_", cleaned.strip())
    return cleaned[:MAX_FILE_NAME_LENGTH] or DEFAULT_FILE_NAME


def export_build_json(inputs: Inputs, store: Optional[MarginalAppliedStore] = None) -> Tuple[str, str]:
    """
    Export a build for download.
    Returns (file_name, pretty-printed JSON text).
    """
    data = build_export_data(inputs, store)
    file_name = f"{safe_file_name(data.get('jsonName'))}.json"
    return file_name, json.dumps(data, indent=2)


def import_build_json(content: Union[bytes, str]) -> Tuple[bool, Union[Dict[str, Any], str]]:
    """
    Parse an uploaded JSON document.

    Returns:
        (True, document) on success, (False, error message) otherwise.
    """
    raw = content.encode('utf-8') if isinstance(content, str) else content
    if len(raw) > MAX_IMPORT_BYTES:
        logger.warning("Rejected import of %d bytes", len(raw))
        return False, ERR_TOO_LARGE

    try:
        text = raw.decode('utf-8-sig')
    except UnicodeDecodeError:
        return False, ERR_READ_FAILED

    try:
        data = json.loads(text)
    except ValueError:
        return False, ERR_INVALID_JSON

    if not isinstance(data, dict):
        return False, ERR_NOT_OBJECT
    return True, data
