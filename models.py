"""
SQLAlchemy ORM models for the BAG Priminfo premium tables, plus the
pydantic request models that define each tool's input schema.
"""
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import Boolean, Column, Float, Index, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# === Value sets ===

AGE_BANDS = ("child", "young_adult", "adult")
FRANCHISE_STEPS = (0, 100, 200, 300, 400, 500, 600, 1000, 1500, 2000, 2500)

FIRST_YEAR = 2016
LAST_YEAR = 2026

AgeBand = Literal["child", "young_adult", "adult"]
Franchise = Literal[0, 100, 200, 300, 400, 500, 600, 1000, 1500, 2000, 2500]
ModelType = Literal["standard", "hmo", "telmed", "family_doctor", "diverse"]


# === Tables ===

class Premium(Base):
    """
    One monthly premium per insurer and rate profile.
    Indexed on the exact-match profile used by every query.
    """
    __tablename__ = "premiums"

    id = Column(Integer, primary_key=True)

    # Rate dimensions
    canton = Column(String(2), nullable=False)
    region = Column(String, nullable=True)  # Priminfo premium region, e.g. "PR-REG CH1"
    year = Column(Integer, nullable=False)
    age_band = Column(String, nullable=False)
    franchise_chf = Column(Integer, nullable=False)
    model_type = Column(String, nullable=False, default="standard")
    accident_covered = Column(Boolean, nullable=False, default=True)

    insurer_id = Column(String(4), nullable=False)
    monthly_premium_chf = Column(Float, nullable=False)
    tariff_name = Column(String)

    __table_args__ = (
        Index('idx_premium_profile', 'canton', 'year', 'age_band', 'franchise_chf', 'model_type'),
        Index('idx_premium_insurer', 'insurer_id', 'year'),
    )


class Insurer(Base):
    """Insurer master data. Names in the static registry take precedence."""
    __tablename__ = "insurers"

    id = Column(Integer, primary_key=True)
    insurer_id = Column(String(4), unique=True, nullable=False)
    name = Column(String, nullable=False)


class Location(Base):
    """Postal code to canton/premium region mapping."""
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True)
    postal_code = Column(String(4), nullable=False)
    locality = Column(String)
    canton = Column(String(2), nullable=False)
    region = Column(String)


# === Tool request models ===

class ProfileRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    canton: str = Field(..., description="Canton (2-letter code, e.g. 'ZH', 'BE', 'GE')")
    age_band: AgeBand = Field(
        ..., description="Age band: child (0-18), young_adult (19-25), adult (26+)"
    )
    franchise_chf: Franchise = Field(..., description="Deductible (franchise) in CHF")
    model_type: ModelType = Field(default="standard", description="Insurance model (default: standard)")
    accident_covered: bool = Field(default=True, description="Accident coverage included (default: true)")

    @field_validator("canton")
    @classmethod
    def _canton_code(cls, value: str) -> str:
        value = value.strip().upper()
        if len(value) != 2 or not value.isalpha():
            raise ValueError(f"canton must be a 2-letter code, got {value!r}")
        return value


class CheapestInsurersRequest(ProfileRequest):
    year: int = Field(..., description=f"Year (data available {FIRST_YEAR}-{LAST_YEAR})")


class CompareInsurersRequest(ProfileRequest):
    insurer_names: List[str] = Field(
        ..., min_length=1, description="Insurer names, e.g. ['CSS', 'Helsana', 'Swica']"
    )
    year: int = Field(..., description=f"Year (data available {FIRST_YEAR}-{LAST_YEAR})")


class PriceHistoryRequest(ProfileRequest):
    insurer_name: str = Field(..., description="Insurer name, e.g. 'CSS' or 'Helsana'")
    start_year: int = Field(default=FIRST_YEAR, description=f"First year (default: {FIRST_YEAR})")
    end_year: int = Field(default=LAST_YEAR, description=f"Last year (default: {LAST_YEAR})")


class DatabaseStatsRequest(BaseModel):
    pass
