"""Generate the JSON schema of the paths file and save it to schemas/."""

import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from layertar.kernel.paths import Paths


def generate_schemas():
    """Generate JSON schemas for all input models."""
    schemas_dir = Path(__file__).parent.parent / "schemas"
    schemas_dir.mkdir(exist_ok=True)

    paths_schema = Paths.model_json_schema()
    paths_schema_path = schemas_dir / "paths.schema.json"
    with open(paths_schema_path, 'w', encoding='utf-8') as f:
        json.dump(paths_schema, f, indent=2, ensure_ascii=False)
    print(f"Generated: {paths_schema_path}")


if __name__ == "__main__":
    generate_schemas()
