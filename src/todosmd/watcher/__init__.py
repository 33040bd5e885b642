from .index_watcher import IndexWatcher

__all__ = ["IndexWatcher"]
