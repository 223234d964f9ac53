from .interaction_validator import AuthorizeInteractionValidator, InteractionValidator

__all__ = ["AuthorizeInteractionValidator", "InteractionValidator"]
