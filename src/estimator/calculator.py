"""Material quantity calculator.

Turns one wall type's linear footage, its assembly spec and the project's
user inputs into a material bill. Pure and deterministic: the same inputs
always produce the same quantities, and every count is rounded up after the
waste factor is applied.

Formulas (LF = linear feet, SF = square feet, waste = 1 + waste% / 100):
    square_ft      = LF x deck height x 2 faces
    studs          = ceil(LF x 12 / spacing x waste) + ceil(LF / extra_stud_every_lf)
    track (each)   = ceil(LF x waste)
    drywall area   = square_ft x layers each side x waste
    sheets         = ceil(drywall area / sheet SF), sheet size by deck height
    compound boxes = ceil(drywall area x rate[finish level])
    tape rolls     = ceil(drywall area x tape rate)
    screws (lbs)   = ceil(drywall area x screw rate)
    corner bead    = ceil(square_ft / corner_bead_sf_per_lf)
    paint gallons  = ceil(square_ft x coats / paint coverage)
    primer gallons = ceil(square_ft / primer coverage)
    insulation SF  = ceil(square_ft / 2 x waste), insulated types only
"""
import math
from typing import Optional

from errors import InvalidCalculatorInput
from schemas.takeoff import MaterialQuantities, UserInputs, WallTypeSpec, WallTypeTotal
from estimator.rates import CoverageRates, default_rates

# Decimal places kept before rounding up
_PRECISION = 6


def _ceil(value: float) -> int:
    # Drop float noise so 264.00000000000003 bills 264, not 265
    return math.ceil(round(value, _PRECISION))


def validate_inputs(spec: WallTypeSpec, inputs: UserInputs) -> None:
    """
    Reject inputs the formulas cannot use.

    Raises:
        InvalidCalculatorInput: If deck height or stud spacing is not positive,
            waste is negative or fewer than one paint coat is asked for
    """
    if not inputs.deck_height_ft > 0:
        raise InvalidCalculatorInput(f"Deck height must be positive, got {inputs.deck_height_ft}")
    if not inputs.waste_factor_percent >= 0:
        raise InvalidCalculatorInput(f"Waste factor cannot be negative, got {inputs.waste_factor_percent}")
    if inputs.paint_coats < 1:
        raise InvalidCalculatorInput(f"Paint coats must be at least 1, got {inputs.paint_coats}")
    if not spec.stud_spacing_inches > 0:
        raise InvalidCalculatorInput(
            f"Stud spacing for wall type {spec.type_code} must be positive, got {spec.stud_spacing_inches}"
        )


def calculate_wall_materials(
    total: WallTypeTotal,
    spec: WallTypeSpec,
    inputs: UserInputs,
    rates: Optional[CoverageRates] = None,
) -> MaterialQuantities:
    """
    Calculate the material bill for one wall type.

    Args:
        total: Aggregated linear footage for the type
        spec: Merged assembly spec for the type
        inputs: Project-wide user inputs
        rates: Coverage rates (default: rates.yaml shipped with the package)

    Returns:
        MaterialQuantities for the type

    Raises:
        InvalidCalculatorInput: If deck height or stud spacing is not positive
    """
    validate_inputs(spec, inputs)
    rates = rates or default_rates()

    linear_ft = total.total_lf
    deck = inputs.deck_height_ft
    waste = 1 + inputs.waste_factor_percent / 100

    square_ft = linear_ft * deck * 2
    drywall_area = square_ft * spec.layers_each_side * waste
    sheet = rates.sheet_for(deck)
    track_lf = _ceil(linear_ft * waste)

    return MaterialQuantities(
        type_code=spec.type_code,
        description=spec.description,
        linear_ft=linear_ft,
        square_ft=square_ft,
        deck_height_ft=deck,
        stud_size=spec.stud_size,
        stud_gauge=inputs.stud_gauge or spec.stud_gauge,
        studs=_ceil(linear_ft * (12 / spec.stud_spacing_inches) * waste)
        + _ceil(linear_ft / rates.extra_stud_every_lf),
        top_track_lf=track_lf,
        bottom_track_lf=track_lf,
        drywall_sheets=_ceil(drywall_area / sheet.square_ft),
        sheet_size=sheet.size,
        layers_each_side=spec.layers_each_side,
        drywall_type=inputs.drywall_type or spec.drywall_type,
        drywall_thickness=inputs.drywall_thickness or spec.drywall_thickness,
        joint_compound_boxes=_ceil(drywall_area * rates.compound_rate(inputs.finish_level)),
        tape_rolls=_ceil(drywall_area * rates.tape_rolls_per_sf),
        screws_lbs=_ceil(drywall_area * rates.screws_lbs_per_sf),
        corner_bead_lf=_ceil(square_ft / rates.corner_bead_sf_per_lf),
        finish_level=inputs.finish_level,
        paint_gallons=_ceil(square_ft * inputs.paint_coats / rates.paint_sf_per_gallon),
        primer_gallons=_ceil(square_ft / rates.primer_sf_per_gallon),
        paint_type=inputs.paint_type,
        paint_coats=inputs.paint_coats,
        insulation_sf=_ceil(square_ft / 2 * waste) if spec.insulation else None,
        spec_source=spec.spec_source,
    )
