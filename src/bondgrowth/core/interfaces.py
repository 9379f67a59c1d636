"""
Engine interface protocol for BondGrowth.
Defines the contract every scenario engine must satisfy.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .context import SimulationContext
    from .results import ScenarioRun
    from .slots import Slot


@runtime_checkable
class IScenarioEngine(Protocol):
    """
    Contract for scenario engines.
    Responsibilities: advance a private copy of the slots year by year and
    report values and cash flows on the model basis (unscaled).
    """

    def run(self, slots: Sequence[Slot], scenario, ctx: SimulationContext) -> ScenarioRun:
        """
        Run the full-horizon projection for one scenario.

        The input slots are never mutated; every run works on its own pool.

        Returns:
            ScenarioRun with ``values[0]`` equal to the initial portfolio value
            and one YearEvent per year after the first.
        """
        ...


__all__ = ["IScenarioEngine"]
