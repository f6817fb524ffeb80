"""
Hex topology for Hex Battle.
Adjacency, breadth-first distance, shortest paths and movement flood-fill on a
rectangular offset hex grid (pointy-top, odd rows shifted half a cell right).

All distance and path queries use these offset (column, row) coordinates.
"""

from collections import deque
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Set, Tuple

Hex = Tuple[int, int]

UNREACHABLE = -1

# Neighbor offsets by row parity: NW, NE, E, SE, SW, W
EVEN_ROW_OFFSETS = [(-1, -1), (0, -1), (1, 0), (0, 1), (-1, 1), (-1, 0)]
ODD_ROW_OFFSETS = [(0, -1), (1, -1), (1, 0), (1, 1), (0, 1), (-1, 0)]


class InvalidHexError(ValueError):
    """Raised when a coordinate falls outside the grid."""
    pass


class HexGrid:
    """
    Rectangular offset hex grid of ``width`` columns and ``height`` rows.

    The grid is immutable, so unblocked BFS results are memoised per source
    hex and shared by every state of the same size (see ``get_grid``).
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self._distance_cache: Dict[Hex, Dict[Hex, int]] = {}

    def __repr__(self) -> str:
        return f"HexGrid({self.width}x{self.height})"

    def is_valid(self, position: Hex) -> bool:
        """Check if a coordinate is within the grid bounds."""
        q, r = position
        return 0 <= q < self.width and 0 <= r < self.height

    def validate(self, position: Hex) -> Hex:
        """Return ``position`` unchanged, or raise InvalidHexError if out of bounds."""
        if not self.is_valid(position):
            raise InvalidHexError(
                f"Hex {position} is outside the {self.width}x{self.height} grid"
            )
        return position

    def neighbors(self, position: Hex) -> List[Hex]:
        """
        Get the in-bounds neighbors of a hex.

        Args:
            position: (column, row) coordinate

        Returns:
            Up to 6 neighboring coordinates, ordered NW, NE, E, SE, SW, W
        """
        q, r = self.validate(position)
        offsets = EVEN_ROW_OFFSETS if r % 2 == 0 else ODD_ROW_OFFSETS
        result = []
        for dq, dr in offsets:
            nq, nr = q + dq, r + dr
            if 0 <= nq < self.width and 0 <= nr < self.height:
                result.append((nq, nr))
        return result

    def _bfs_distances(self, start: Hex, blocked: Optional[Set[Hex]] = None) -> Dict[Hex, int]:
        distances = {start: 0}
        frontier = deque([start])
        while frontier:
            current = frontier.popleft()
            for neighbor in self.neighbors(current):
                if neighbor in distances:
                    continue
                if blocked and neighbor in blocked:
                    continue
                distances[neighbor] = distances[current] + 1
                frontier.append(neighbor)
        return distances

    def distances_from(self, start: Hex) -> Dict[Hex, int]:
        """Unblocked step counts from ``start`` to every hex (memoised)."""
        self.validate(start)
        cached = self._distance_cache.get(start)
        if cached is None:
            cached = self._bfs_distances(start)
            self._distance_cache[start] = cached
        return cached

    def distance(self, a: Hex, b: Hex, blocked: Optional[Iterable[Hex]] = None) -> int:
        """
        Breadth-first step count between two hexes.

        Args:
            a: Starting hex
            b: Goal hex
            blocked: Hexes that cannot be entered (the goal is always enterable)

        Returns:
            Number of steps, or UNREACHABLE (-1) if no path exists
        """
        self.validate(a)
        self.validate(b)
        if a == b:
            return 0
        if not blocked:
            return self.distances_from(a).get(b, UNREACHABLE)
        blocked_set = set(blocked)
        blocked_set.discard(b)
        return self._bfs_distances(a, blocked_set).get(b, UNREACHABLE)

    def in_range(self, a: Hex, b: Hex, max_distance: int) -> bool:
        d = self.distance(a, b)
        return 0 <= d <= max_distance

    def shortest_path(self, start: Hex, goal: Hex, blocked: Optional[Iterable[Hex]] = None) -> List[Hex]:
        """
        Shortest path between two hexes.

        Blocked hexes are impassable, except the goal itself which stays
        enterable even if it is listed as blocked.

        Args:
            start: Starting hex
            goal: Goal hex
            blocked: Impassable hexes

        Returns:
            Hexes from start (exclusive) to goal (inclusive); empty if no path
            exists or start == goal
        """
        self.validate(start)
        self.validate(goal)
        if start == goal:
            return []
        blocked_set = set(blocked) if blocked else set()

        came_from: Dict[Hex, Hex] = {start: start}
        frontier = deque([start])
        while frontier:
            current = frontier.popleft()
            if current == goal:
                path = []
                while current != start:
                    path.append(current)
                    current = came_from[current]
                path.reverse()
                return path
            for neighbor in self.neighbors(current):
                if neighbor in came_from:
                    continue
                if neighbor in blocked_set and neighbor != goal:
                    continue
                came_from[neighbor] = current
                frontier.append(neighbor)
        return []

    def movement_range(self, start: Hex, max_steps: int, blocked: Optional[Iterable[Hex]] = None) -> List[Hex]:
        """
        Flood-fill every hex reachable within ``max_steps`` steps.

        Blocked hexes are never stepped onto and are pruned from the frontier;
        cells behind them remain reachable through other routes.

        Args:
            start: Starting hex (excluded from the result)
            max_steps: Step budget; 0 or less yields nothing
            blocked: Hexes that cannot be entered

        Returns:
            Reachable hexes in BFS discovery order
        """
        self.validate(start)
        if max_steps <= 0:
            return []
        blocked_set = set(blocked) if blocked else set()

        reachable = []
        visited = {start: 0}
        frontier = deque([start])
        while frontier:
            current = frontier.popleft()
            steps = visited[current]
            if steps > 0:
                reachable.append(current)
            if steps >= max_steps:
                continue
            for neighbor in self.neighbors(current):
                if neighbor in visited or neighbor in blocked_set:
                    continue
                visited[neighbor] = steps + 1
                frontier.append(neighbor)
        return reachable

    def free_neighbors(self, position: Hex, occupied: Set[Hex]) -> List[Hex]:
        return [n for n in self.neighbors(position) if n not in occupied]


@lru_cache(maxsize=32)
def get_grid(width: int, height: int) -> HexGrid:
    """Shared HexGrid instance for a board size, so distance memos are reused."""
    return HexGrid(width, height)
