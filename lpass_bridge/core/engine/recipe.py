"""
Recipe engine — typed, composable units of process-backed work.

A recipe turns one typed input into one typed output, or raises. The
three building blocks:

    CommandRecipe   inputs → process → ProcessOutput → outputs
    SequenceRecipe  inputs → A → (inputs, A-output) → B → outputs
    CatchRecipe     inputs → recipe → outputs, or error → handler → None

Recipes share a structural interface (the ``Recipe`` protocol) rather
than a base class, so any object with a matching ``transform`` method
composes.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Protocol, TypeVar

from lpass_bridge.core.models.output import ProcessOutput

logger = logging.getLogger(__name__)

I = TypeVar("I")
O = TypeVar("O")
M = TypeVar("M")
I_contra = TypeVar("I_contra", contravariant=True)
O_co = TypeVar("O_co", covariant=True)


class Recipe(Protocol[I_contra, O_co]):
    """Anything that turns an input into an output."""

    def transform(self, inputs: I_contra) -> O_co: ...


class Runnable(Protocol):
    """The slice of InteractiveProcess a CommandRecipe depends on."""

    def run(self) -> ProcessOutput: ...


def _reraise(error: Exception) -> Any:
    raise error


class CommandRecipe(Generic[I, O]):
    """Run one process per invocation and transform its output.

    Args:
        process_factory: Builds a fresh, unlaunched process from the inputs.
            Called once per ``transform``; nothing is shared between runs.
        output_transformer: Turns the finished ProcessOutput into the result.
        recovery: Receives any exception raised while building or running
            the process. May return a substitute result or raise. Defaults
            to re-raising.
    """

    def __init__(
        self,
        process_factory: Callable[[I], Runnable],
        output_transformer: Callable[[ProcessOutput], O],
        recovery: Callable[[Exception], O] | None = None,
    ):
        self._process_factory = process_factory
        self._output_transformer = output_transformer
        self._recovery = recovery or _reraise

    def transform(self, inputs: I) -> O:
        try:
            process = self._process_factory(inputs)
            output = process.run()
        except Exception as e:
            return self._recovery(e)
        return self._output_transformer(output)


class SequenceRecipe(Generic[I, M, O]):
    """Chain two recipes; the second sees ``(inputs, first_output)``.

    Stages run strictly one after another. An error from either stage
    propagates unchanged, and nothing the first stage did is undone.
    """

    def __init__(self, first: Recipe[I, M], second: Recipe[tuple[I, M], O]):
        self.first = first
        self.second = second

    def transform(self, inputs: I) -> O:
        intermediate = self.first.transform(inputs)
        return self.second.transform((inputs, intermediate))


class CatchRecipe(Generic[I, O]):
    """Convert a recipe's errors into a handler call and a ``None`` result."""

    def __init__(self, recipe: Recipe[I, O], error_handler: Callable[[Exception], None]):
        self.recipe = recipe
        self.error_handler = error_handler

    def transform(self, inputs: I) -> O | None:
        try:
            return self.recipe.transform(inputs)
        except Exception as e:
            logger.debug("Recipe %s failed: %s", type(self.recipe).__name__, e)
            self.error_handler(e)
            return None
