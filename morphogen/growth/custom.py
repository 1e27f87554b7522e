"""
Custom (blended) growth.

Composes the four archetypes with fixed weights instead of inheriting
from any of them. Each tick's growth budget is split across the
components in proportion to their weights, and responses are summed with
the amount scaled by each weight.
"""

from typing import Dict, List, Optional, Tuple
import math

from .base import GrowthAlgorithm, GrowthContext, GrowthResult
from .bone import BoneGrowth
from .coral import CoralGrowth
from .mold import MoldGrowth
from .mycelium import MyceliumGrowth


def _default_components() -> Dict[str, GrowthAlgorithm]:
    return {
        "mold": MoldGrowth(),
        "bone": BoneGrowth(),
        "coral": CoralGrowth(),
        "mycelium": MyceliumGrowth(),
    }


class CustomGrowth(GrowthAlgorithm):
    """
    Weighted composition of the archetype algorithms.

    Parameters
    ----------
    components : dict, optional
        Name -> algorithm. Names are matched against
        ``ArchetypePolicy.custom_weights``.
    """

    name = "custom"

    def __init__(self, components: Optional[Dict[str, GrowthAlgorithm]] = None):
        self.components = components or _default_components()
        self._credits: Dict[str, float] = {name: 0.0 for name in self.components}

    def weighted_components(self, context: GrowthContext) -> List[Tuple[str, GrowthAlgorithm, float]]:
        """Components with normalized weights, heaviest first."""
        weights = context.policy.custom_weights or {}
        items = [
            (name, algo, float(weights.get(name, 0.0)))
            for name, algo in self.components.items()
            if weights.get(name, 0.0) > 0
        ]
        total = sum(w for _, _, w in items)
        if total <= 0:
            return []
        items = [(name, algo, w / total) for name, algo, w in items]
        items.sort(key=lambda item: -item[2])
        return items

    def plan(self, steps: int, context: GrowthContext) -> List[Tuple[GrowthAlgorithm, int]]:
        """
        Split ``steps`` across components by weight.

        Fractional shares carry over between ticks as credits, and steps
        left after flooring go to the components with the largest credit,
        so over many ticks each component receives its weighted share
        even when ``steps`` is small.
        """
        items = self.weighted_components(context)
        if not items or steps <= 0:
            return []

        allocation: Dict[str, int] = {}
        for name, _, weight in items:
            credit = self._credits.get(name, 0.0) + steps * weight
            count = max(0, int(math.floor(credit)))
            allocation[name] = count
            self._credits[name] = credit - count

        left = steps - sum(allocation.values())
        order = [name for name, _, _ in items]
        while left > 0:
            best = max(order, key=lambda name: self._credits[name])
            allocation[best] += 1
            self._credits[best] -= 1.0
            left -= 1

        return [(algo, allocation[name]) for name, algo, _ in items if allocation[name] > 0]

    def select_sources(self, graph, context: GrowthContext) -> List[int]:
        """Union of component sources, heaviest component first."""
        sources: List[int] = []
        seen = set()
        for _, algo, _ in self.weighted_components(context):
            for node_id in algo.select_sources(graph, context):
                if node_id not in seen:
                    seen.add(node_id)
                    sources.append(node_id)
        return sources

    def _pick(self, context: GrowthContext) -> List[GrowthAlgorithm]:
        items = self.weighted_components(context)
        if not items:
            return []
        weights = [w for _, _, w in items]
        first = int(context.rng.choice(len(items), p=weights))
        return [items[first][1]] + [algo for i, (_, algo, _) in enumerate(items) if i != first]

    def propose_from(self, graph, source_id: int, context: GrowthContext) -> GrowthResult:
        for algo in self._pick(context):
            result = algo.propose_from(graph, source_id, context)
            if result.is_valid:
                return result
        return GrowthResult.invalid(self.name)

    def calculate_growth(self, graph, context: GrowthContext) -> GrowthResult:
        """Ask a weighted-random component first, then the others."""
        for algo in self._pick(context):
            result = algo.calculate_growth(graph, context)
            if result.is_valid:
                return result
        return GrowthResult.invalid(self.name)

    def after_growth(self, graph, result: GrowthResult, new_id: int, context: GrowthContext) -> float:
        algo = self.components.get(result.source)
        if algo is None:
            return super().after_growth(graph, result, new_id, context)
        return algo.after_growth(graph, result, new_id, context)

    def reinforce(self, graph, amount: float, context: GrowthContext) -> float:
        return sum(
            algo.reinforce(graph, amount * weight, context)
            for _, algo, weight in self.weighted_components(context)
        )

    def respond(self, graph, amount: float, context: GrowthContext) -> float:
        return sum(
            algo.respond(graph, amount * weight, context)
            for _, algo, weight in self.weighted_components(context)
        )

    def reset(self) -> None:
        self._credits = {name: 0.0 for name in self.components}
        for algo in self.components.values():
            algo.reset()
