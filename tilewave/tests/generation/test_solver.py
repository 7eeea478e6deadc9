"""Tests for the collapse engine: entropy, selection, propagation."""

import random

import pytest

from tilewave.core.errors import InvalidInputError
from tilewave.core.pixels import PixelGrid, pack_color
from tilewave.core.types import Direction
from tilewave.generation import composite, learn, synthesize
from tilewave.generation.wfc import (
    CollapseEngine,
    EntropyModel,
    RuleTable,
    SolverState,
    SuperpositionField,
    done,
    step,
)


class FixedRandom(random.Random):
    """Random whose randrange always returns a fixed value (for selection tests)."""

    def __init__(self, value: int):
        super().__init__(0)
        self.value = value

    def randrange(self, *args, **kwargs):
        return self.value


def all_compatible(tile_count: int) -> RuleTable:
    """Rules where every tile may touch every tile."""
    return RuleTable.from_pairs(
        tile_count,
        [(a, d, b) for a in range(tile_count) for d in Direction for b in range(tile_count)],
    )


def assert_arc_consistent(field: SuperpositionField, rules: RuleTable) -> None:
    """Every candidate of every cell has a supporting candidate in each neighbour."""
    for index, cell in enumerate(field.cells):
        for neighbor, direction in field.neighbors(index):
            neighbor_cell = field.cells[neighbor]
            for tile_id in cell:
                assert any(rules.allowed(tile_id, direction, other) for other in neighbor_cell), (
                    f"tile {tile_id} at {field.coords(index)} unsupported {direction.name}"
                )


def run_steps(engine: CollapseEngine, field: SuperpositionField, limit: int = 10_000):
    """Yield (state, before, after) for each step until the engine stops."""
    for _ in range(limit):
        before = field.snapshot()
        state = engine.step(field)
        yield state, before, field.snapshot()
        if state != SolverState.RUNNING:
            return


class TestEntropy:
    """Test frequency-weighted Shannon entropy."""

    def test_uniform_pair_is_one_bit(self):
        model = EntropyModel([5, 5])
        assert model.entropy({0, 1}) == pytest.approx(1.0)

    def test_single_candidate_is_zero(self):
        assert EntropyModel([3, 4]).entropy({1}) == 0.0

    def test_concentrated_distribution_has_lower_entropy(self):
        """Adding a dominant tile lowers entropy below the even two-tile split."""
        model = EntropyModel([1, 1, 98])
        assert model.entropy({0, 1, 2}) < model.entropy({0, 1})

    def test_probabilities_are_normalised_over_the_set(self):
        """Entropy only depends on the weights of tiles still in the set."""
        model = EntropyModel([1, 1, 1000])
        assert model.entropy({0, 1}) == pytest.approx(1.0)

    def test_lower_entropy_cell_collapses_first(self):
        rules = all_compatible(3)
        engine = CollapseEngine(rules, [1, 1, 98], random.Random(0))
        field = SuperpositionField(3, 1, 3)
        field.primed = True
        field.constrain(1, frozenset({0, 1}))
        field.queue.push(engine.entropy.entropy(field.cells[1]), 1)
        field.queue.push(engine.entropy.entropy(field.cells[2]), 2)

        engine.step(field)

        assert engine.last_collapsed == 2


class TestTileSelection:
    """Test frequency-weighted random choice."""

    @pytest.mark.parametrize("draw,expected", [(0, 0), (1, 1), (2, 2), (50, 2), (99, 2)])
    def test_cumulative_walk(self, draw, expected):
        """The first tile whose cumulative weight exceeds the draw wins."""
        rules = all_compatible(3)
        engine = CollapseEngine(rules, [1, 1, 98], FixedRandom(draw))
        assert engine.choose_tile({0, 1, 2}) == expected

    def test_only_candidates_are_weighed(self):
        rules = all_compatible(3)
        engine = CollapseEngine(rules, [5, 1, 1], FixedRandom(1))
        assert engine.choose_tile({1, 2}) == 2

    def test_choice_follows_frequencies(self):
        rules = all_compatible(2)
        engine = CollapseEngine(rules, [1, 3], random.Random(99))
        picks = [engine.choose_tile({0, 1}) for _ in range(2000)]
        share = picks.count(1) / len(picks)
        assert 0.7 < share < 0.8

    def test_empty_candidates_raise(self):
        engine = CollapseEngine(all_compatible(2), [1, 1], random.Random(0))
        with pytest.raises(ValueError):
            engine.choose_tile(set())


class TestEngineValidation:
    """Test precondition checks."""

    def test_frequency_count_must_match(self):
        with pytest.raises(InvalidInputError):
            CollapseEngine(all_compatible(2), [1], random.Random(0))

    def test_frequencies_must_be_positive(self):
        with pytest.raises(InvalidInputError):
            CollapseEngine(all_compatible(2), [1, 0], random.Random(0))

    def test_field_must_match_rules(self):
        engine = CollapseEngine(all_compatible(2), [1, 1], random.Random(0))
        with pytest.raises(InvalidInputError):
            engine.step(SuperpositionField(2, 2, 3))


class TestTrivialInput:
    """A one-color source generates a one-color output immediately."""

    def test_completes_immediately(self):
        color = pack_color(40, 50, 60)
        library, rules = learn(PixelGrid.from_rows([[color]]), 1)
        field = SuperpositionField(5, 4, library.tile_count)

        assert done(field)
        state = step(field, rules, library.frequency, random.Random(1))

        assert state == SolverState.COMPLETE
        assert composite(field, library).pixels == (color,) * 20

    def test_larger_tile_on_single_pixel(self):
        color = pack_color(1, 1, 1)
        library, rules = learn(PixelGrid.from_rows([[color]]), 3)
        assert library.tile_count == 1
        field = SuperpositionField(3, 3, 1)
        assert step(field, rules, library.frequency, random.Random(1)) == SolverState.COMPLETE


class TestPropagation:
    """Test arc-consistency and monotone shrink across steps."""

    @pytest.mark.parametrize("source,tile_size,width,height", [
        ("column_grid", 2, 6, 4),
        ("checker_grid", 2, 4, 4),
        ("blob_grid", 3, 10, 10),
        ("blob_grid", 3, 5, 10),
    ])
    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_arc_consistent_after_every_step(self, request, source, tile_size, width, height, seed):
        """Check every non-contradicting step, restarting until one run completes."""
        library, rules = learn(request.getfixturevalue(source), tile_size)
        engine = CollapseEngine(rules, library.frequency, random.Random(seed))
        field = SuperpositionField(width, height, library.tile_count)

        checked = 0
        for _ in range(200):
            for state, _, _ in run_steps(engine, field):
                if state == SolverState.CONTRADICTION:
                    break
                assert_arc_consistent(field, rules)
                checked += 1
            if state == SolverState.COMPLETE:
                break
            engine.reset(field)

        assert checked > 0
        assert state == SolverState.COMPLETE

    def test_arc_consistent_across_synthesis_restarts(self, blob_grid):
        """Every frame synthesize() hands out is consistent unless it contradicted."""
        library, rules = learn(blob_grid, 3)
        checked = []

        def check(number, field):
            if not field.contradicted:
                assert_arc_consistent(field, rules)
                checked.append(number)

        synthesize(library, rules, 10, 5, random.Random(7), max_restarts=None, frame_callback=check)

        assert checked

    @pytest.mark.parametrize("seed", [5, 6])
    def test_cells_only_shrink(self, blob_grid, seed):
        library, rules = learn(blob_grid, 2)
        engine = CollapseEngine(rules, library.frequency, random.Random(seed))
        field = SuperpositionField(6, 6, library.tile_count)

        for state, before, after in run_steps(engine, field):
            for old, new in zip(before, after):
                assert new <= old

    def test_each_step_collapses_a_cell(self, column_grid):
        library, rules = learn(column_grid, 2)
        engine = CollapseEngine(rules, library.frequency, random.Random(3))
        field = SuperpositionField(6, 4, library.tile_count)

        state = engine.step(field)

        assert engine.last_collapsed is not None
        assert field.is_collapsed(engine.last_collapsed)
        assert state in (SolverState.RUNNING, SolverState.COMPLETE)

    def test_collapse_fixes_whole_column(self, column_grid):
        """Stripe tiles only allow themselves vertically, so a column locks in one step."""
        library, rules = learn(column_grid, 2)
        engine = CollapseEngine(rules, library.frequency, random.Random(8))
        field = SuperpositionField(6, 4, library.tile_count)

        engine.step(field)

        x, _ = field.coords(engine.last_collapsed)
        column = {field.tile_id(field.index_of(x, y)) for y in range(4)}
        assert len(column) == 1
        assert None not in column

    def test_checkerboard_solves_even_output(self, checker_grid):
        library, rules = learn(checker_grid, 2)
        engine = CollapseEngine(rules, library.frequency, random.Random(0))
        field = SuperpositionField(4, 4, library.tile_count)

        assert engine.solve(field)
        assert field.is_fully_collapsed()
        pixels = composite(field, library)
        for y in range(4):
            for x in range(4):
                assert pixels.get(x, y) != pixels.get_wrapped(x + 1, y)
                assert pixels.get(x, y) != pixels.get_wrapped(x, y + 1)

    def test_stale_queue_entries_are_skipped(self):
        rules = all_compatible(3)
        engine = CollapseEngine(rules, [1, 1, 1], random.Random(0))
        field = SuperpositionField(3, 1, 3)
        field.primed = True
        field.queue.push(-1.0, 0)
        field.collapse(0, 1)

        engine.step(field)

        assert engine.last_collapsed in (1, 2)
        assert field.cells[0] == frozenset({1})

    def test_unreached_cells_still_get_collapsed(self):
        """With no constraints the queue runs dry; remaining cells are reseeded."""
        rules = all_compatible(2)
        engine = CollapseEngine(rules, [1, 1], random.Random(4))
        field = SuperpositionField(3, 3, 2)

        assert engine.solve(field)
        assert engine.step_count == 9


class TestStepNumbering:
    """Step numbers live on the field, not on the engine."""

    def test_module_step_logs_consecutive_numbers(self, column_grid, caplog):
        library, rules = learn(column_grid, 2)
        field = SuperpositionField(6, 4, library.tile_count)
        rng = random.Random(2)

        with caplog.at_level("DEBUG", logger="tilewave.generation.wfc.solver"):
            while step(field, rules, library.frequency, rng) == SolverState.RUNNING:
                pass

        collapses = [r.getMessage() for r in caplog.records if "COLLAPSE" in r.getMessage()]
        assert collapses
        expected = [f"STEP {n:06d} | COLLAPSE" for n in range(1, len(collapses) + 1)]
        assert [message[:len(expected[0])] for message in collapses] == expected

    def test_field_counts_steps_across_engines(self, column_grid):
        library, rules = learn(column_grid, 2)
        field = SuperpositionField(6, 4, library.tile_count)
        rng = random.Random(5)

        assert step(field, rules, library.frequency, rng) == SolverState.RUNNING
        assert field.steps == 1
        step(field, rules, library.frequency, rng)
        assert field.steps == 2

    def test_reset_clears_field_steps(self, column_grid):
        library, rules = learn(column_grid, 2)
        engine = CollapseEngine(rules, library.frequency, random.Random(1))
        field = SuperpositionField(6, 4, library.tile_count)
        engine.step(field)
        assert field.steps == 1

        engine.reset(field)

        assert field.steps == 0


class TestDeterminism:
    """Same seed, same result."""

    def test_same_seed_same_field(self, blob_grid):
        library, rules = learn(blob_grid, 2)

        def run(seed):
            engine = CollapseEngine(rules, library.frequency, random.Random(seed))
            field = SuperpositionField(7, 5, library.tile_count)
            states = [state for state, _, _ in run_steps(engine, field)]
            return states, field.snapshot()

        assert run(21) == run(21)

    def test_stepwise_and_fresh_engines_agree(self, column_grid):
        """Driving the module-level step() gives the same result as one engine."""
        library, rules = learn(column_grid, 2)

        engine_field = SuperpositionField(6, 3, library.tile_count)
        CollapseEngine(rules, library.frequency, random.Random(9)).solve(engine_field)

        step_field = SuperpositionField(6, 3, library.tile_count)
        rng = random.Random(9)
        while step(step_field, rules, library.frequency, rng) == SolverState.RUNNING:
            pass

        assert step_field.snapshot() == engine_field.snapshot()


class TestContradiction:
    """Test contradiction reporting and recovery."""

    def inconsistent_rules(self) -> RuleTable:
        """Tile 0 needs tile 1 on every side, tile 1 allows nothing."""
        return RuleTable.from_pairs(
            2,
            [(0, d, 1) for d in Direction],
            bidirectional=False,
        )

    def test_inconsistent_rules_contradict(self):
        engine = CollapseEngine(self.inconsistent_rules(), [1, 1], random.Random(0))
        field = SuperpositionField(3, 3, 2)

        assert engine.step(field) == SolverState.CONTRADICTION
        assert field.contradicted
        assert engine.last_contradiction is not None

    def test_contradicted_field_is_terminal(self):
        engine = CollapseEngine(self.inconsistent_rules(), [1, 1], random.Random(0))
        field = SuperpositionField(3, 3, 2)
        engine.step(field)
        frozen = field.snapshot()

        assert engine.step(field) == SolverState.CONTRADICTION
        assert field.snapshot() == frozen

    def test_reset_returns_to_full_superposition(self):
        engine = CollapseEngine(self.inconsistent_rules(), [1, 1], random.Random(0))
        field = SuperpositionField(3, 3, 2)
        engine.step(field)

        engine.reset(field)

        assert not field.contradicted
        assert all(cell == frozenset({0, 1}) for cell in field.cells)
        assert len(field.queue) == 0
        assert engine.step_count == 0

    def test_odd_checkerboard_always_contradicts(self, checker_grid):
        """A checkerboard cannot wrap around an odd torus."""
        library, rules = learn(checker_grid, 2)
        for seed in range(5):
            engine = CollapseEngine(rules, library.frequency, random.Random(seed))
            field = SuperpositionField(3, 3, library.tile_count)
            assert not engine.solve(field)
            assert field.contradicted

    def test_solve_reports_success(self, checker_grid):
        library, rules = learn(checker_grid, 2)
        engine = CollapseEngine(rules, library.frequency, random.Random(0))
        assert engine.solve(SuperpositionField(2, 6, library.tile_count))
