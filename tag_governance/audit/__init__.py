from .action_log import ActionLog

__all__ = ["ActionLog"]
