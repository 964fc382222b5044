"""Recipe engine — composition primitives and the shared error taxonomy."""

from lpass_bridge.core.engine.auth import AuthPromptHandler, AuthState
from lpass_bridge.core.engine.errors import ErrorKind, RecipeError
from lpass_bridge.core.engine.recipe import (
    CatchRecipe,
    CommandRecipe,
    Recipe,
    SequenceRecipe,
)

__all__ = [
    "AuthPromptHandler",
    "AuthState",
    "CatchRecipe",
    "CommandRecipe",
    "ErrorKind",
    "Recipe",
    "RecipeError",
    "SequenceRecipe",
]
