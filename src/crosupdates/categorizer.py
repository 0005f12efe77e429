from typing import Dict, Mapping, Tuple

from crosupdates.models import Board


def categorize_boards(
    boards: Mapping[str, Board],
) -> Tuple[Dict[str, Board], Dict[str, Board]]:
    """
    Split boards into multi-device and single-device maps.

    Boards are visited in sorted key order so both results iterate
    deterministically. A board with more than one device is multi-device;
    every other board, including an empty one, is single-device.

    Returns:
        Tuple[Dict[str, Board], Dict[str, Board]]: (multi_device_boards, single_device_boards)
    """
    multi_device_boards: Dict[str, Board] = {}
    single_device_boards: Dict[str, Board] = {}

    for key in sorted(boards):
        board = boards[key]
        if board.device_count > 1:
            multi_device_boards[key] = board
        else:
            single_device_boards[key] = board

    return multi_device_boards, single_device_boards
