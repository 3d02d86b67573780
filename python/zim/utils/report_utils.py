"""
Saving rendered pull reports to disk.

A saved report is a pair of files sharing one base path: the rendered table
as <base>.txt and the machine-readable report as <base>.json.
"""
import json
from pathlib import Path
from typing import Any, Dict, Tuple

from zim.utils.logging_utils import get_logger

logger = get_logger(__name__)


def save_json(path: str, data: Any) -> str:
    """
    Write data as indented JSON, creating parent directories.

    Returns:
        Path of the written file
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    with open(target, "w") as f:
        json.dump(data, f, indent=2)
        f.write("\n")
    logger.debug(f"Wrote {target}")
    return str(target)


def save_report_files(base_path: str, text: str, data: Dict[str, Any]) -> Tuple[str, str]:
    """
    Save a rendered report next to its JSON form.

    Args:
        base_path: Path without extension, e.g. 'reports/pulls'
        text: Rendered report
        data: JSON-serializable report

    Returns:
        (text path, json path)
    """
    base = Path(base_path)
    text_path = base.with_name(base.name + ".txt")
    text_path.parent.mkdir(parents=True, exist_ok=True)

    text_path.write_text(text if text.endswith("\n") else text + "\n")
    json_path = save_json(str(base.with_name(base.name + ".json")), data)

    logger.info(f"Report saved to {text_path} and {json_path}")
    return str(text_path), json_path
