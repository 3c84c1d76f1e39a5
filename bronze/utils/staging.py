"""Output path conventions for Bronze files."""

from pathlib import Path
from typing import Union

OUTPUT_SUFFIX = ".parquet"
UNIT_ID_SEPARATOR = "__"


def unit_id_for(source_path: Union[str, Path], base_dir: Union[str, Path]) -> str:
    """Derive a stable unit identity from an input file's location.

    The path relative to the record type directory, without its suffix,
    with directory levels joined by '__'.

    Example:
        >>> unit_id_for("raw/statsbomb/events/3788741.json", "raw/statsbomb/events")
        '3788741'
        >>> unit_id_for("raw/statsbomb/matches/43/106.json", "raw/statsbomb/matches")
        '43__106'
    """
    relative = Path(source_path).relative_to(base_dir)
    parts = relative.with_suffix("").parts
    return UNIT_ID_SEPARATOR.join(parts)


def get_output_path(
    output_root: Union[str, Path],
    source: str,
    record_type: str,
    unit_id: str,
) -> Path:
    """Generate the output path for one unit.

    Pattern: <output_root>/<source>/<record_type>/<unit_id>.parquet
    """
    return Path(output_root) / source / record_type / f"{unit_id}{OUTPUT_SUFFIX}"
