from .validator import EventValidator, validator

__all__ = ["EventValidator", "validator"]
