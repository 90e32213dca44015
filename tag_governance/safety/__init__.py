from .guardian import MutationGuardian, SafetyViolation

__all__ = ["MutationGuardian", "SafetyViolation"]
