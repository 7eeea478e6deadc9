"""
Adjacency rules for Wave Function Collapse.

The RuleTable answers one question: may tile B sit next to tile A in a
given direction? For each tile and direction it stores the set of allowed
neighbour ids, which is what propagation consumes (it unions whole sets).
"""

from __future__ import annotations

from typing import Iterable, Sequence

from tilewave.core.errors import InvalidInputError
from tilewave.core.types import Direction
from .tile import Tile, overlap_agrees


# Memoised unions are dropped wholesale past this many entries
_UNION_CACHE_LIMIT = 1 << 16


class RuleTable:
    """
    The relation allowed(a, direction, b) over tile ids 0..tile_count-1.

    Tables built from tiles are symmetric by construction:
    allowed(a, d, b) holds exactly when allowed(b, d.opposite, a) does.
    Tables built from explicit pairs contain only what they were given.
    """

    def __init__(self, tile_count: int, allowed: Sequence[Sequence[Iterable[int]]]):
        """
        Args:
            tile_count: Number of tiles the table covers
            allowed: allowed[tile][direction.index] -> ids allowed in that direction
        """
        if tile_count < 1:
            raise InvalidInputError(f"A rule table needs at least one tile, got {tile_count}")
        if len(allowed) != tile_count:
            raise InvalidInputError(
                f"Expected rules for {tile_count} tiles, got {len(allowed)}"
            )

        self._tile_count = tile_count
        self._allowed: list[tuple[frozenset[int], ...]] = []
        for tile_id, per_direction in enumerate(allowed):
            if len(per_direction) != len(Direction):
                raise InvalidInputError(
                    f"Tile {tile_id} needs rules for {len(Direction)} directions"
                )
            self._allowed.append(tuple(frozenset(ids) for ids in per_direction))

        self._union_cache: dict[tuple[frozenset[int], int], frozenset[int]] = {}

    @classmethod
    def from_tiles(cls, tiles: Sequence[Tile]) -> RuleTable:
        """
        Derive the rules by overlap comparison of every ordered pair of tiles.

        Only RIGHT and DOWN are tested; LEFT and UP are their mirror images,
        which keeps the table symmetric.
        """
        if not tiles:
            raise InvalidInputError("Cannot derive rules from an empty tile list")
        size = tiles[0].size
        if any(tile.size != size for tile in tiles):
            raise InvalidInputError("All tiles must share one size")

        allowed: list[list[set[int]]] = [
            [set() for _ in Direction] for _ in tiles
        ]
        for a, tile_a in enumerate(tiles):
            for b, tile_b in enumerate(tiles):
                for direction in (Direction.RIGHT, Direction.DOWN):
                    if overlap_agrees(tile_a, tile_b, direction.dx, direction.dy):
                        allowed[a][direction.index].add(b)
                        allowed[b][direction.opposite.index].add(a)

        return cls(len(tiles), allowed)

    @classmethod
    def from_pairs(
        cls,
        tile_count: int,
        pairs: Iterable[tuple[int, Direction, int]],
        bidirectional: bool = True,
    ) -> RuleTable:
        """
        Build a table from explicit (a, direction, b) triples.

        With bidirectional=True each triple also allows (b, opposite, a),
        like declaring the rule from both sides.
        """
        allowed: list[list[set[int]]] = [
            [set() for _ in Direction] for _ in range(tile_count)
        ]
        for a, direction, b in pairs:
            for tile_id in (a, b):
                if not 0 <= tile_id < tile_count:
                    raise InvalidInputError(f"Tile id {tile_id} out of range 0..{tile_count - 1}")
            allowed[a][direction.index].add(b)
            if bidirectional:
                allowed[b][direction.opposite.index].add(a)
        return cls(tile_count, allowed)

    @property
    def tile_count(self) -> int:
        return self._tile_count

    def allowed(self, a: int, direction: Direction, b: int) -> bool:
        """May tile b appear in `direction` from tile a?"""
        return b in self._allowed[a][direction.index]

    def allowed_neighbors(self, tile_id: int, direction: Direction) -> frozenset[int]:
        """All tile ids allowed in the given direction from tile_id."""
        return self._allowed[tile_id][direction.index]

    def allowed_union(self, tiles: frozenset[int], direction: Direction) -> frozenset[int]:
        """
        Union of the allowed neighbours of every tile in `tiles`.

        This is what a neighbour cell may still be, given that this cell
        could be any of `tiles`. Results are memoised per candidate set.
        """
        key = (tiles, direction.index)
        cached = self._union_cache.get(key)
        if cached is not None:
            return cached

        union: set[int] = set()
        for tile_id in tiles:
            union |= self._allowed[tile_id][direction.index]
        result = frozenset(union)

        if len(self._union_cache) >= _UNION_CACHE_LIMIT:
            self._union_cache.clear()
        self._union_cache[key] = result
        return result

    def rule_count(self) -> int:
        """Total number of allowed (a, direction, b) triples."""
        return sum(len(ids) for per_direction in self._allowed for ids in per_direction)
