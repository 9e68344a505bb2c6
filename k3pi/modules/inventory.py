"""Node inventory loading."""
import logging
from typing import Any, List

import yaml
from jsonschema import ValidationError, validate

from k3pi.modules.k3os.errors import InputError
from k3pi.modules.k3os.models import ARCH_ALIASES, Node

logger = logging.getLogger("k3pi.inventory")

INVENTORY_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "hostname": {"type": ["string", "null"]},
            "address": {"type": "string", "minLength": 1},
            "arch": {"type": "string", "enum": sorted(ARCH_ALIASES)},
            "user": {"type": "string", "minLength": 1},
        },
        "required": ["address"],
    },
}


def parse_inventory(text: str) -> List[Node]:
    """Parse a YAML list of node records.

    Raises:
        InputError: On invalid YAML, schema violations, or an empty inventory
    """
    try:
        data: Any = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise InputError(f"error parsing nodes from file: {e}") from e

    if not data:
        raise InputError("No nodes found in file")

    try:
        validate(instance=data, schema=INVENTORY_SCHEMA)
    except ValidationError as ve:
        raise InputError(f"invalid inventory: {ve.message}") from ve

    nodes = []
    for record in data:
        kwargs = {key: record[key] for key in ("arch", "user", "hostname") if record.get(key)}
        nodes.append(Node(address=record["address"], **kwargs))

    logger.debug("Loaded %d node(s) from inventory", len(nodes))
    return nodes
