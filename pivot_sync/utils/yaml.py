"""Contains utility functions for working with YAML files."""

from pathlib import Path
from typing import Any, TextIO

from ruamel.yaml import YAML

yaml = YAML(typ="safe")


def load_yaml_text(content: str) -> Any:
    """Parses YAML text and returns the resulting document."""
    return yaml.load(content)


def create_yaml_dumper() -> YAML:
    """Creates a properly configured YAML object for dumping with multiline string support."""
    yaml_dumper = YAML()
    yaml_dumper.default_flow_style = False
    yaml_dumper.indent(mapping=2, sequence=4, offset=2)  # type: ignore[attr-defined]
    yaml_dumper.width = 4096  # Prevent line wrapping for long lines

    def represent_str(dumper: Any, data: str) -> Any:
        """Custom string representer that uses literal scalar style for multiline strings."""
        if "\n" in data:
            return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
        return dumper.represent_scalar("tag:yaml.org,2002:str", data)

    yaml_dumper.representer.add_representer(str, represent_str)  # type: ignore[attr-defined]

    return yaml_dumper


def dump_yaml_to_file(data: Any, file_path: Path) -> None:
    """Dumps data to a YAML file with proper multiline string formatting."""
    yaml_dumper = create_yaml_dumper()
    with open(file_path, "w", encoding="utf-8") as f:
        yaml_dumper.dump(data, f)  # type: ignore[misc]


def dump_yaml_to_stream(data: Any, stream: TextIO) -> None:
    """Dumps data as YAML to an open text stream."""
    create_yaml_dumper().dump(data, stream)  # type: ignore[misc]
