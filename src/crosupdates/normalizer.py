"""
Board/device normalization.

Expands the serving-builds `builds` map, where a board either describes a
single device directly or nests per-model records under `models`, into a
flat device map and a board map.
"""

from typing import Any, Dict, Mapping, Tuple

from crosupdates.exceptions import DataFormatError
from crosupdates.log_utils import logger
from crosupdates.models import Board, Device


def _add_device(
    devices: Dict[str, Device], board: Board, device: Device
) -> None:
    if device.key in devices and devices[device.key].main_board != board.key:
        logger.debug(
            f"Device key {device.key} on board {board.key} replaces the one "
            f"from board {devices[device.key].main_board}"
        )
    devices[device.key] = device
    board.devices[device.key] = device


def process_boards_and_devices(
    raw_boards: Mapping[str, Any],
) -> Tuple[Dict[str, Device], Dict[str, Board]]:
    """
    Build the device and board maps from raw board records.

    Boards with a null value are skipped with a warning. For a board with
    `models`, each model becomes a Device whose main board is the board key;
    otherwise the board record itself becomes a Device keyed by the board key.
    Device keys are assumed unique upstream; a later duplicate replaces an
    earlier one in the global map.

    Parameters:
        raw_boards (Mapping[str, Any]): The `builds` object from the serving-builds response.

    Returns:
        Tuple[Dict[str, Device], Dict[str, Board]]: (devices, boards), both in discovery order.
    """
    devices: Dict[str, Device] = {}
    boards: Dict[str, Board] = {}

    for board_key, board_data in raw_boards.items():
        if board_data is None:
            logger.warning(f"Skipping undefined value for board: {board_key}")
            continue
        if not isinstance(board_data, Mapping):
            logger.warning(
                f"Skipping board {board_key}: expected object, got {type(board_data).__name__}"
            )
            continue

        board = Board.from_raw(board_key, board_data)
        models = board_data.get("models")

        if models is not None:
            if not isinstance(models, Mapping):
                logger.warning(
                    f"Skipping board {board_key}: models is {type(models).__name__}, not an object"
                )
                continue
            for model_key, model_data in models.items():
                try:
                    device = Device.from_raw(model_key, board_key, model_data)
                except DataFormatError as e:
                    logger.warning(f"Skipping model on board {board_key}: {e}")
                    continue
                _add_device(devices, board, device)
        else:
            _add_device(devices, board, Device.from_raw(board_key, board_key, board_data))

        if not board.devices:
            logger.warning(f"Skipping board {board_key}: no usable models")
            continue
        boards[board_key] = board

    return devices, boards
