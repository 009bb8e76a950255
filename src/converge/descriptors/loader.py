"""Load and validate descriptor sets from YAML."""

import yaml
from pathlib import Path
from typing import Any, Dict, List, NamedTuple
from pydantic import ValidationError
from ..utils.errors import DescriptorLoadError
from ..utils.logging import get_logger
from .models import ResourceDescriptor

logger = get_logger("descriptors.loader")


class DescriptorSet(NamedTuple):
    """Desired descriptors plus the descriptors previously under management."""
    resources: List[ResourceDescriptor]
    managed: List[ResourceDescriptor]


def load_descriptor_file(descriptor_file: str) -> DescriptorSet:
    """
    Load a descriptor set from a YAML file.

    The file holds a ``resources`` list and, optionally, a ``managed`` list of
    descriptors that were applied before; managed entries missing from
    ``resources`` are candidates for deletion.

    Args:
        descriptor_file: Path to descriptor YAML file

    Returns:
        DescriptorSet with validated descriptors

    Raises:
        DescriptorLoadError: If the file is missing, malformed or invalid
    """
    path = Path(descriptor_file)

    if not path.exists():
        raise DescriptorLoadError(f"Descriptor file not found: {descriptor_file}")

    if not path.is_file():
        raise DescriptorLoadError(f"Path is not a file: {descriptor_file}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DescriptorLoadError(f"Invalid YAML in descriptor file: {e}")
    except OSError as e:
        raise DescriptorLoadError(f"Error reading descriptor file: {e}")

    descriptor_set = parse_descriptor_document(data)
    logger.info(
        f"Loaded {len(descriptor_set.resources)} resources "
        f"({len(descriptor_set.managed)} managed) from {descriptor_file}"
    )
    return descriptor_set


def parse_descriptor_document(data: Any) -> DescriptorSet:
    """Validate an already-parsed descriptor document."""
    if not isinstance(data, dict):
        raise DescriptorLoadError("Descriptor file must contain a dictionary")

    if "resources" not in data:
        raise DescriptorLoadError("Descriptor file must contain 'resources' key")

    resources = parse_descriptors(data["resources"] or [], section="resources")
    managed = parse_descriptors(data.get("managed") or [], section="managed")
    return DescriptorSet(resources=resources, managed=managed)


def parse_descriptors(entries: Any, section: str = "resources") -> List[ResourceDescriptor]:
    """Validate a list of raw descriptor mappings, rejecting duplicate ids."""
    if not isinstance(entries, list):
        raise DescriptorLoadError(f"'{section}' must be a list")

    descriptors: List[ResourceDescriptor] = []
    seen: Dict[str, int] = {}
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise DescriptorLoadError(f"Invalid descriptor at {section}[{idx}]: expected a mapping")
        try:
            descriptor = ResourceDescriptor(**entry)
        except ValidationError as e:
            raise DescriptorLoadError(f"Invalid descriptor at {section}[{idx}]: {e}")

        if descriptor.id in seen:
            raise DescriptorLoadError(
                f"Duplicate descriptor id '{descriptor.id}' at {section}[{idx}] "
                f"(first defined at {section}[{seen[descriptor.id]}])"
            )
        seen[descriptor.id] = idx
        descriptors.append(descriptor)

    return descriptors


def dump_descriptors(resources: List[ResourceDescriptor], managed: List[ResourceDescriptor] = None) -> str:
    """Render descriptors back to the YAML document format."""
    document: Dict[str, Any] = {
        "resources": [descriptor.model_dump(mode="json") for descriptor in resources]
    }
    if managed:
        document["managed"] = [descriptor.model_dump(mode="json") for descriptor in managed]
    return yaml.safe_dump(document, default_flow_style=False, sort_keys=False)
