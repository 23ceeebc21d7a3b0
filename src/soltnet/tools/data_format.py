"""
Rewrite instruction data of a stored template through a typed schema.
"""

import json

from soltnet.tx_format.data_format import pack_data, unpack_data
from soltnet.tx_format.json_tx import load_raw_tx_from_json, save_raw_tx_to_json
from soltnet.utils.logger import get_logger

logger = get_logger(__name__)


def set_data_format(tx_path: str, format_path: str, program_id: str) -> None:
    """Apply a data schema to the first instruction of ``program_id``.

    The instruction's current data is packed without parameters, unpacked
    through the schema read from ``format_path`` and the template file is
    rewritten in place.

    Raises:
        ValueError: If no instruction targets ``program_id``
    """
    tx = load_raw_tx_from_json(tx_path)
    with open(format_path) as f:
        try:
            data_format = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {format_path}: {e!s}") from e

    for instruction in tx.instructions:
        if instruction.program_id == program_id:
            data = pack_data(instruction.data)
            instruction.data = unpack_data(data, data_format, 0)
            save_raw_tx_to_json(tx, tx_path)
            logger.info(f"Updated data format for instruction in program {program_id}")
            return

    raise ValueError(f"Program ID {program_id} not found in transaction instructions.")
