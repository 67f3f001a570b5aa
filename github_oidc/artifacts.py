"""JSON documents written alongside a run for later inspection."""
import json
from pathlib import Path
from typing import Union

APP_FILE = "app.json"
CREDENTIAL_FILE = "credential.json"


def write_json(directory: Union[str, Path], filename: str, document: dict) -> Path:
    """Write `document` as indented JSON and return the file's path."""
    path = Path(directory) / filename
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(document, f, indent=2)
        f.write("\n")
    return path
