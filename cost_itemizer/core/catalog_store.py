import logging
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError

from cost_itemizer.core.config import CHARGES_DATA_PATH
from cost_itemizer.models.charges import ChargeCatalog

logger = logging.getLogger(__name__)


class CatalogLoadError(RuntimeError):
    """The published price file is missing or is not a standard-charge file."""


def load_catalog(path: str | Path) -> ChargeCatalog:
    """Read and validate a standard-charge JSON file."""
    file_path = Path(path)
    try:
        raw = file_path.read_bytes()
    except OSError as exc:
        logger.error("load_catalog: cannot read %s: %s", file_path, exc)
        raise CatalogLoadError(f"Cannot read price file {file_path}") from exc

    try:
        catalog = ChargeCatalog.model_validate_json(raw)
    except ValidationError as exc:
        logger.error("load_catalog: %s is not a valid price file: %s", file_path, exc.error_count())
        raise CatalogLoadError(f"Invalid price file {file_path}") from exc

    logger.info(
        "load_catalog: %s  hospital=%s  items=%d",
        file_path,
        catalog.hospital_name,
        len(catalog.standard_charge_information),
    )
    return catalog


@lru_cache(maxsize=1)
def get_catalog() -> ChargeCatalog:
    """Process-wide catalog, loaded once from ``CHARGES_DATA_PATH``."""
    return load_catalog(CHARGES_DATA_PATH)
