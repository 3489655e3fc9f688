"""Coverage-rate tables for the material quantity calculator.

The numbers live in rates.yaml next to this module; an estimator can point
the CLI at an alternate file without touching code.
"""
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from schemas.enums import FINISH_LEVELS, SheetSize

DEFAULT_RATES_PATH = Path(__file__).parent / "rates.yaml"


class SheetRate(BaseModel):
    """One drywall sheet size and the deck heights it covers."""
    size: SheetSize
    max_deck_height_ft: Optional[float] = Field(default=None, gt=0, description="None = no upper bound")
    square_ft: float = Field(gt=0)


class CoverageRates(BaseModel):
    """Coverage rates and allowances used by the calculator."""
    extra_stud_every_lf: float = Field(gt=0)
    sheets: List[SheetRate] = Field(min_length=1)
    joint_compound_per_sf: Dict[int, float]
    tape_rolls_per_sf: float = Field(ge=0)
    screws_lbs_per_sf: float = Field(ge=0)
    corner_bead_sf_per_lf: float = Field(gt=0)
    paint_sf_per_gallon: float = Field(gt=0)
    primer_sf_per_gallon: float = Field(gt=0)

    @field_validator("sheets")
    @classmethod
    def _sheets_ordered(cls, sheets: List[SheetRate]) -> List[SheetRate]:
        bounded = [s.max_deck_height_ft for s in sheets if s.max_deck_height_ft is not None]
        if bounded != sorted(bounded):
            raise ValueError("sheets must be ordered by max_deck_height_ft")
        if sheets[-1].max_deck_height_ft is not None:
            raise ValueError("last sheet entry must have no max_deck_height_ft")
        return sheets

    @model_validator(mode="after")
    def _all_finish_levels(self) -> "CoverageRates":
        missing = [lvl for lvl in FINISH_LEVELS if lvl not in self.joint_compound_per_sf]
        if missing:
            raise ValueError(f"joint_compound_per_sf missing finish levels {missing}")
        return self

    def sheet_for(self, deck_height_ft: float) -> SheetRate:
        """Smallest sheet whose bound covers the deck height."""
        for sheet in self.sheets:
            if sheet.max_deck_height_ft is None or deck_height_ft <= sheet.max_deck_height_ft:
                return sheet
        return self.sheets[-1]

    def compound_rate(self, finish_level: int) -> float:
        return self.joint_compound_per_sf[finish_level]


def load_rates(path: Union[str, Path, None] = None) -> CoverageRates:
    """
    Load coverage rates from YAML.

    Args:
        path: Rates file (default: rates.yaml shipped with the package)

    Returns:
        Validated CoverageRates

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the file is malformed
    """
    if path is None:
        return default_rates()
    with open(path) as f:
        return CoverageRates.model_validate(yaml.safe_load(f))


@lru_cache(maxsize=1)
def default_rates() -> CoverageRates:
    """Rates shipped with the package, loaded once."""
    with open(DEFAULT_RATES_PATH) as f:
        return CoverageRates.model_validate(yaml.safe_load(f))
