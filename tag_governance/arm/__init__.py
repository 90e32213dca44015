from .client import ArmAPIError, ArmClient

__all__ = ["ArmAPIError", "ArmClient"]
