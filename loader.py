"""
BAG Priminfo export loader.
Reads premium exports (CSV or Excel) and populates the premium tables.
"""
import re
from pathlib import Path

import pandas as pd
from sqlalchemy.orm import Session

import insurers
from database import get_session_factory, init_db
from models import AGE_BANDS, FRANCHISE_STEPS, Insurer, Premium

AGE_CLASSES = {"AKL-KIN": "child", "AKL-JUG": "young_adult", "AKL-ERW": "adult"}
TARIFF_TYPES = {"TAR-BASE": "standard", "TAR-HMO": "hmo", "TAR-HAM": "family_doctor", "TAR-DIV": "diverse"}

PRIMINFO_COLUMNS = {
    "versicherer": "insurer_id",
    "kanton": "canton",
    "region": "region",
    "geschäftsjahr": "year",
    "altersklasse": "age_band",
    "unfalleinschluss": "accident_covered",
    "tariftyp": "model_type",
    "tarifbezeichnung": "tariff_name",
    "franchise": "franchise_chf",
    "prämie": "monthly_premium_chf",
}


def _open_session(db):
    if db is not None:
        return db, False
    init_db()
    return get_session_factory()(), True


def read_export(file_path) -> pd.DataFrame:
    path = Path(file_path)
    if path.suffix.lower() in (".xlsx", ".xls"):
        return pd.read_excel(path, dtype={"Versicherer": str})
    return pd.read_csv(path, sep=";", dtype={"Versicherer": str}, encoding="utf-8")


def _model_type(tariff_type: str, tariff_name) -> str:
    # Priminfo files telemedicine tariffs under TAR-DIV
    if tariff_type == "TAR-DIV" and re.search(r"tel", str(tariff_name), re.IGNORECASE):
        return "telmed"
    return TARIFF_TYPES.get(tariff_type, "diverse")


def normalize_export(df: pd.DataFrame) -> pd.DataFrame:
    """
    Map Priminfo columns and codes to the premiums schema.

    - Versicherer: zero-padded 4-digit code
    - Altersklasse: AKL-KIN / AKL-JUG / AKL-ERW -> child / young_adult / adult
    - Unfalleinschluss: MIT-UNF -> True, OHNE-UNF -> False
    - Tariftyp: TAR-BASE / TAR-HMO / TAR-HAM / TAR-DIV (telmed by tariff name)
    - Franchise: FRA-300 or 300 -> 300

    Rows outside the known age bands or deductible steps are dropped.
    """
    df = df.copy()
    df.columns = df.columns.str.lower().str.strip()
    df = df.rename(columns=PRIMINFO_COLUMNS)

    if "tariff_name" not in df.columns:
        df["tariff_name"] = None
    if "region" not in df.columns:
        df["region"] = None

    df["insurer_id"] = df["insurer_id"].map(insurers.normalize_code)
    df["canton"] = df["canton"].astype(str).str.strip().str.upper()
    df["year"] = df["year"].astype(int)
    df["age_band"] = df["age_band"].astype(str).str.strip().str.upper().map(AGE_CLASSES).fillna(df["age_band"])
    df["accident_covered"] = df["accident_covered"].apply(
        lambda x: str(x).strip().upper() in ("MIT-UNF", "TRUE", "1", "YES", "JA")
    )
    df["model_type"] = [
        _model_type(str(t).strip().upper(), name) for t, name in zip(df["model_type"], df["tariff_name"])
    ]
    df["franchise_chf"] = df["franchise_chf"].astype(str).str.extract(r"(\d+)", expand=False).astype(int)
    df["monthly_premium_chf"] = df["monthly_premium_chf"].astype(float)

    df = df[df["age_band"].isin(AGE_BANDS) & df["franchise_chf"].isin(FRANCHISE_STEPS)]
    return df[list(PRIMINFO_COLUMNS.values())]


def load_priminfo_export(file_path: str, db: Session = None) -> int:
    """
    Load a Priminfo premium export into the premiums table.

    Returns: number of rows loaded
    """
    db, owned = _open_session(db)

    try:
        df = normalize_export(read_export(file_path))
        print(f"Read {len(df)} premium rows from {file_path}")

        for row in df.itertuples(index=False):
            db.add(Premium(
                insurer_id=row.insurer_id,
                canton=row.canton,
                region=row.region if pd.notna(row.region) else None,
                year=int(row.year),
                age_band=row.age_band,
                accident_covered=bool(row.accident_covered),
                model_type=row.model_type,
                tariff_name=row.tariff_name if pd.notna(row.tariff_name) else None,
                franchise_chf=int(row.franchise_chf),
                monthly_premium_chf=float(row.monthly_premium_chf),
            ))

        db.commit()
        print(f"Loaded {len(df)} premiums")
        return len(df)

    except Exception:
        db.rollback()
        raise
    finally:
        if owned:
            db.close()


def sync_insurers(db: Session = None) -> int:
    """Write the static registry into the insurers table."""
    db, owned = _open_session(db)

    try:
        existing = {i.insurer_id: i for i in db.query(Insurer).all()}
        for code, name in insurers.INSURER_NAMES.items():
            if code in existing:
                existing[code].name = name
            else:
                db.add(Insurer(insurer_id=code, name=name))
        db.commit()
        return len(insurers.INSURER_NAMES)

    except Exception:
        db.rollback()
        raise
    finally:
        if owned:
            db.close()


def generate_sample_data(db: Session = None) -> int:
    """
    Generate sample premiums for demo purposes.
    One tariff per primary brand, canton, year and rate profile.
    """
    db, owned = _open_session(db)

    try:
        brands = sorted(insurers.PRIMARY_CODES.items())
        cantons = {"ZH": 1.05, "BE": 1.0, "GE": 1.2, "VD": 1.12, "BS": 1.18, "LU": 0.9, "TI": 1.08, "ZG": 0.85}
        age_factors = {"child": 0.25, "young_adult": 0.75, "adult": 1.0}
        model_factors = {"standard": 1.0, "hmo": 0.82, "telmed": 0.8, "family_doctor": 0.86, "diverse": 0.9}

        count = 0
        for index, (brand, code) in enumerate(brands):
            # Brands differ by a stable few percent
            brand_factor = 0.92 + (index * 7 % 13) * 0.012

            for year in range(2016, 2027):
                year_factor = 1.0 + (year - 2016) * 0.035

                for canton, canton_factor in cantons.items():
                    for age_band, age_factor in age_factors.items():
                        franchises = (0, 200, 600) if age_band == "child" else (300, 1000, 2500)
                        for franchise in franchises:
                            franchise_factor = 1.0 - (franchise - 300) * 0.00012

                            for model, model_factor in model_factors.items():
                                for accident in (True, False):
                                    monthly = (
                                        330  # CHF base
                                        * brand_factor
                                        * year_factor
                                        * canton_factor
                                        * age_factor
                                        * franchise_factor
                                        * model_factor
                                        * (1.0 if accident else 0.93)
                                    )
                                    db.add(Premium(
                                        insurer_id=code,
                                        canton=canton,
                                        year=year,
                                        age_band=age_band,
                                        franchise_chf=franchise,
                                        model_type=model,
                                        accident_covered=accident,
                                        monthly_premium_chf=round(monthly, 2),
                                        tariff_name=f"{brand} {model.replace('_', ' ').title()}",
                                    ))
                                    count += 1

        db.commit()
        print(f"Generated {count} sample premium rows")
        return count

    except Exception:
        db.rollback()
        raise
    finally:
        if owned:
            db.close()


if __name__ == "__main__":
    import sys

    sync_insurers()
    if len(sys.argv) > 1:
        load_priminfo_export(sys.argv[1])
    else:
        generate_sample_data()
