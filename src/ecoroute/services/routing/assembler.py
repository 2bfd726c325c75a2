"""Join cluster tours into one depot-anchored route and resolve its legs."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Sequence

from ...models.domain import Depot, PickupLocation, Point
from .legs import LegStrategy, resolve_leg
from .models import RouteLeg, TourResult

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AssembledRoute:
    stops: List[PickupLocation]
    legs: List[RouteLeg]


class RouteAssembler:
    """Builds consecutive legs depot -> stop 1 -> ... -> stop n (-> depot).

    Legs are independent so they may be resolved concurrently; results are stored by index,
    which keeps the output identical to a sequential run.
    """

    def __init__(self, strategies: Sequence[LegStrategy], *, max_parallel_legs: int = 1) -> None:
        if not strategies:
            raise ValueError("At least one leg strategy is required.")
        self.strategies = list(strategies)
        self.max_parallel_legs = max(1, max_parallel_legs)

    def assemble(
        self,
        depot: Depot,
        tours: Sequence[TourResult],
        *,
        return_to_depot: bool = False,
    ) -> AssembledRoute:
        stops = [pickup for tour in tours for pickup in tour.order]

        waypoints: list[tuple[str, Point]] = [(depot.code, depot.point)]
        waypoints.extend((stop.pickup_id, stop.point) for stop in stops)
        if return_to_depot and stops:
            waypoints.append((depot.code, depot.point))
        pairs = list(zip(waypoints, waypoints[1:]))

        if self.max_parallel_legs == 1 or len(pairs) <= 1:
            legs = [self._resolve(pair) for pair in pairs]
        else:
            legs = [None] * len(pairs)
            with ThreadPoolExecutor(max_workers=min(self.max_parallel_legs, len(pairs))) as executor:
                futures = {executor.submit(self._resolve, pair): index for index, pair in enumerate(pairs)}
                for future, index in futures.items():
                    legs[index] = future.result()

        logger.debug(f"Assembled {len(stops)} stops into {len(legs)} legs")
        return AssembledRoute(stops=stops, legs=legs)

    def _resolve(self, pair: tuple[tuple[str, Point], tuple[str, Point]]) -> RouteLeg:
        (from_id, origin), (to_id, destination) = pair
        return resolve_leg(self.strategies, from_id, origin, to_id, destination)
