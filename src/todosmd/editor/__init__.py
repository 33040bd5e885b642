from .task_editor import EditResult, cascade_done, mark_task_done, mark_task_undone, set_task_status

__all__ = ["EditResult", "cascade_done", "mark_task_done", "mark_task_undone", "set_task_status"]
