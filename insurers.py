"""
Insurer registry and name resolution.

Priminfo identifies insurers by a 4-digit BAG code. Mergers left several
codes trading under one brand, so a display name can own many codes. The
registry below is the single source of names; the insurers table in the
store is never consulted for them.
"""
from typing import Dict, List, Optional, Set

INSURER_NAMES: Dict[str, str] = {
    # CSS group
    "0008": "CSS",
    "1507": "CSS",
    "1142": "CSS",
    "1529": "Arcosana",
    # Helsana group
    "1562": "Helsana",
    "1568": "Helsana",
    "1570": "Helsana",
    "1575": "Helsana",
    "0994": "Helsana",
    # Groupe Mutuel
    "1479": "Groupe Mutuel",
    "0343": "Groupe Mutuel",
    "0774": "Groupe Mutuel",
    "1535": "Groupe Mutuel",
    "0134": "Groupe Mutuel",
    # Visana group
    "1555": "Visana",
    "0941": "Visana",
    "1113": "Visana",
    # Sympany
    "0057": "Sympany",
    "0509": "Sympany",
    # KPT / Atupri
    "0376": "KPT",
    "0312": "Atupri",
    # Swica
    "1384": "Swica",
    "1386": "Galenos",
    # Sanitas
    "1509": "Sanitas",
    "1510": "Sanitas",
    "0290": "Concordia",
    "1542": "Assura",
    "0455": "ÖKK",
    "0881": "EGK",
    "0032": "Aquilana",
    "0062": "Sumiswalder",
    "0182": "Provita",
    "0360": "Luzerner Hinterland",
    "0558": "KK Birchmeier",
    "0762": "Kolping",
    "0780": "Glarner Krankenversicherung",
    "0820": "Lumneziana",
    "0829": "KVF Krankenversicherung Flaach",
    "0901": "KK Institut Ingenbohl",
    "0923": "SLKK",
    "0966": "vita surselva",
    "1040": "KK Visperterminen",
    "1318": "Krankenkasse Wädenswil",
    "1322": "Krankenkasse Stoffel Mels",
    "1331": "Krankenkasse Steffisburg",
    "1401": "rhenusana",
    "1560": "Agrisano",
    "1561": "Easy Sana",
}

PRIMARY_CODES: Dict[str, str] = {
    "CSS": "0008",
    "Helsana": "1562",
    "Groupe Mutuel": "1479",
    "Visana": "1555",
    "Sympany": "0057",
    "Swica": "1384",
    "Sanitas": "1509",
    "Concordia": "0290",
    "Assura": "1542",
    "KPT": "0376",
    "Atupri": "0312",
    "ÖKK": "0455",
    "EGK": "0881",
}


def normalize_code(code) -> str:
    """Zero-pad an insurer code to 4 digits."""
    return str(code).strip().zfill(4)


def _contains(a: str, b: str) -> bool:
    return a in b or b in a


class InsurerRegistry:
    """Lookup and fuzzy resolution over a code -> display name table."""

    def __init__(self, names: Dict[str, str], primary: Dict[str, str]):
        self._names = {normalize_code(code): name for code, name in names.items()}
        self._primary = {brand.lower(): normalize_code(code) for brand, code in primary.items()}

    def name_of(self, code) -> str:
        code = normalize_code(code)
        return self._names.get(code) or f"Insurer {code}"

    def known_names(self) -> List[str]:
        return sorted(set(self._names.values()), key=str.lower)

    def primary_code_for(self, name: str) -> Optional[str]:
        """
        Resolve a free-text name to one representative code.

        Tried in order, the first step with a hit wins:
        exact curated brand, curated brand containment, exact registry
        name, registry name containment.
        """
        term = (name or "").strip().lower()
        if not term:
            return None

        if term in self._primary:
            return self._primary[term]

        for brand, code in self._primary.items():
            if _contains(term, brand):
                return code

        for code, display in self._names.items():
            if display.lower() == term:
                return code

        for code, display in self._names.items():
            if _contains(term, display.lower()):
                return code

        return None

    def all_codes_for(self, name: str) -> Set[str]:
        """Every code whose display name contains the term or is contained in it."""
        term = (name or "").strip().lower()
        if not term:
            return set()
        return {code for code, display in self._names.items() if _contains(term, display.lower())}


registry = InsurerRegistry(INSURER_NAMES, PRIMARY_CODES)

name_of = registry.name_of
known_names = registry.known_names
primary_code_for = registry.primary_code_for
all_codes_for = registry.all_codes_for
