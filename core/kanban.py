# Kanban board grouping for tasks and applications

from typing import Callable, Dict, Iterable, List, Sequence

from database.marketplace_models import TaskStatusDB, ApplicationStatusDB

# Column order as shown on the boards
TASK_COLUMNS: Sequence[str] = [s.value for s in TaskStatusDB]
APPLICATION_COLUMNS: Sequence[str] = [s.value for s in ApplicationStatusDB]


def group_by_status(
    items: Iterable,
    columns: Sequence[str],
    serialize: Callable = lambda item: item,
) -> Dict[str, List]:
    """
    Bucket items by their `status` into the given columns.

    Every column is present in the result, empty or not, in board order.
    Items whose status is not a known column are dropped.
    """
    board = {column: [] for column in columns}
    for item in items:
        status = item.status.value if hasattr(item.status, "value") else item.status
        if status in board:
            board[status].append(serialize(item))
    return board
