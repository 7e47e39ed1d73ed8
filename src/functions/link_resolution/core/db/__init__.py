from .task_store import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT, TaskStore, TaskStoreError, new_task_id

__all__ = ["DEFAULT_LIST_LIMIT", "MAX_LIST_LIMIT", "TaskStore", "TaskStoreError", "new_task_id"]
