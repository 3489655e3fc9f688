"""Tests for the material quantity calculator."""
import pytest
from errors import InvalidCalculatorInput
from schemas.enums import SheetSize, SpecSource
from schemas.takeoff import UserInputs, WallTypeSpec, WallTypeTotal
from estimator.calculator import calculate_wall_materials
from estimator.rates import default_rates


def _total(lf=100.0, code="A"):
    return WallTypeTotal(type_code=code, total_lf=lf, segment_count=1)


def _spec(code="A", **kwargs):
    return WallTypeSpec(type_code=code, **kwargs)


class TestWorkedExample:
    """100 LF at 10 ft deck, 16" o.c., 10% waste, level 4 finish, 2 coats."""

    @pytest.fixture
    def result(self):
        return calculate_wall_materials(_total(100), _spec(), UserInputs(deck_height_ft=10, waste_factor_percent=10))

    def test_square_feet(self, result):
        assert result.square_ft == 2000

    def test_studs(self, result):
        # 75 studs x 1.1 = 82.5 -> 83, plus one extra per 10 LF
        assert result.studs == 93

    def test_track(self, result):
        assert result.top_track_lf == 110
        assert result.bottom_track_lf == 110

    def test_sheets(self, result):
        assert result.sheet_size == SheetSize.FOUR_BY_TEN
        assert result.drywall_sheets == 55

    def test_finishing(self, result):
        assert result.joint_compound_boxes == 264
        assert result.tape_rolls == 22
        assert result.screws_lbs == 33
        assert result.corner_bead_lf == 100

    def test_paint(self, result):
        assert result.paint_gallons == 12
        assert result.primer_gallons == 5

    def test_no_insulation_by_default(self, result):
        assert result.insulation_sf is None


class TestSheetSelection:
    @pytest.mark.parametrize("deck,size", [
        (8, SheetSize.FOUR_BY_EIGHT),
        (9, SheetSize.FOUR_BY_TEN),
        (10, SheetSize.FOUR_BY_TEN),
        (11, SheetSize.FOUR_BY_TWELVE),
        (20, SheetSize.FOUR_BY_TWELVE),
    ])
    def test_sheet_size_by_deck_height(self, deck, size):
        result = calculate_wall_materials(_total(), _spec(), UserInputs(deck_height_ft=deck))
        assert result.sheet_size == size


class TestCalculatorProperties:
    def test_idempotent(self):
        inputs = UserInputs(deck_height_ft=12.5, waste_factor_percent=7.5)
        first = calculate_wall_materials(_total(87.3), _spec(), inputs)
        second = calculate_wall_materials(_total(87.3), _spec(), inputs)
        assert first == second

    def test_waste_never_decreases_quantities(self):
        low = calculate_wall_materials(_total(143.7), _spec(), UserInputs(waste_factor_percent=5))
        high = calculate_wall_materials(_total(143.7), _spec(), UserInputs(waste_factor_percent=15))
        for name in ("studs", "top_track_lf", "drywall_sheets", "joint_compound_boxes", "tape_rolls", "screws_lbs"):
            assert getattr(high, name) >= getattr(low, name)

    def test_waste_never_decreases_insulation(self):
        spec = _spec(insulation=True, insulation_type="R-13 batt")
        low = calculate_wall_materials(_total(143.7), spec, UserInputs(waste_factor_percent=5))
        high = calculate_wall_materials(_total(143.7), spec, UserInputs(waste_factor_percent=15))
        assert low.insulation_sf is not None
        assert high.insulation_sf > low.insulation_sf

    def test_zero_footage(self):
        result = calculate_wall_materials(_total(0), _spec(), UserInputs())
        assert result.studs == 0
        assert result.drywall_sheets == 0
        assert result.paint_gallons == 0

    def test_double_layer_doubles_board(self):
        single = calculate_wall_materials(_total(50), _spec(layers_each_side=1), UserInputs())
        double = calculate_wall_materials(_total(50), _spec(layers_each_side=2), UserInputs())
        assert double.drywall_sheets >= 2 * single.drywall_sheets - 1
        assert double.square_ft == single.square_ft

    def test_wider_spacing_fewer_studs(self):
        tight = calculate_wall_materials(_total(100), _spec(stud_spacing_inches=12), UserInputs())
        wide = calculate_wall_materials(_total(100), _spec(stud_spacing_inches=24), UserInputs())
        assert wide.studs < tight.studs

    def test_finish_level_zero_needs_no_compound(self):
        result = calculate_wall_materials(_total(100), _spec(), UserInputs(finish_level=0))
        assert result.joint_compound_boxes == 0


class TestInsulation:
    def test_insulated_type(self):
        spec = _spec(insulation=True, insulation_type="R-13 batt")
        result = calculate_wall_materials(_total(100), spec, UserInputs(deck_height_ft=10, waste_factor_percent=10))
        # One face of wall area plus waste
        assert result.insulation_sf == 1100


class TestEchoedFields:
    def test_inputs_override_spec_board(self):
        spec = _spec(drywall_type="Type X", stud_gauge=20, spec_source=SpecSource.LEGEND)
        result = calculate_wall_materials(_total(), spec, UserInputs(drywall_type="moisture resistant", stud_gauge=18))
        assert result.drywall_type == "moisture resistant"
        assert result.stud_gauge == 18
        assert result.spec_source == SpecSource.LEGEND

    def test_blank_inputs_fall_back_to_spec(self):
        spec = _spec(drywall_type="Type X", drywall_thickness='1/2"')
        result = calculate_wall_materials(_total(), spec, UserInputs(drywall_type="", drywall_thickness=""))
        assert result.drywall_type == "Type X"
        assert result.drywall_thickness == '1/2"'


class TestInvalidInputs:
    @pytest.mark.parametrize("deck", [0, -4])
    def test_non_positive_deck_height(self, deck):
        with pytest.raises(InvalidCalculatorInput):
            calculate_wall_materials(_total(), _spec(), UserInputs(deck_height_ft=deck))

    def test_non_positive_stud_spacing(self):
        with pytest.raises(InvalidCalculatorInput):
            calculate_wall_materials(_total(), _spec(stud_spacing_inches=0), UserInputs())

    @pytest.mark.parametrize("update", [{"waste_factor_percent": -150}, {"paint_coats": 0}, {"paint_coats": -2}])
    def test_unvalidated_inputs_rejected(self, update):
        # model_copy skips field constraints, so the calculator checks these itself
        inputs = UserInputs().model_copy(update=update)
        with pytest.raises(InvalidCalculatorInput):
            calculate_wall_materials(_total(), _spec(), inputs)

    def test_invalid_input_is_a_value_error(self):
        with pytest.raises(ValueError):
            calculate_wall_materials(_total(), _spec(), UserInputs(deck_height_ft=0))


class TestCustomRates:
    def test_paint_coverage_from_rates(self):
        rates = default_rates().model_copy(update={"paint_sf_per_gallon": 200.0})
        result = calculate_wall_materials(_total(100), _spec(), UserInputs(deck_height_ft=10), rates)
        assert result.paint_gallons == 20
