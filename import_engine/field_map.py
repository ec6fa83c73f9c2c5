"""
import_engine.field_map - Spreadsheet header ↔ Load attribute mapping.

The reference spreadsheet uses Swedish headers.  Columns not listed
here are ignored; Load fields with no column are imported as NULL.
"""

# Spreadsheet header  →  Load attribute
COLUMN_MAP: dict[str, str] = {
    "Kaliber":            "caliber",
    "Kultillverkare":     "bullet_manufacturer",
    "Kultyp":             "bullet_type",
    "Kulvikt (grains)":   "bullet_weight_grains",
    "Kulvikt (gram)":     "bullet_weight_grams",
    "Kuldiameter (tum)":  "bullet_diameter_inches",
    "Kuldiameter (mm)":   "bullet_diameter_mm",
    "Patronlängd (mm)":   "total_cartridge_length_mm",
    "Kruttillverkare":    "powder_manufacturer",
    "Kruttsort":          "powder_type",
    "Laddvikt (grains)":  "charge_weight_grains",
    "Hastighet (m/s)":    "velocity_ms",
    "Källa":              "source",
}

# A row without this column is skipped, not reported as an error
REQUIRED_COLUMN = "Kaliber"

SOURCE_COLUMN = "Källa"
