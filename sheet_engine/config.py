"""
Configuration for the spreadsheet analysis engine
"""
import os
from dataclasses import dataclass, field, fields


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass(frozen=True)
class DetectionThresholds:
    """Every tunable threshold and weight used by the detection pipeline"""

    # Header row detection
    header_candidate: float = 0.5
    header_position_weight: float = 0.15
    header_text_weight: float = 0.25
    header_fill_weight: float = 0.15
    header_style_weight: float = 0.10
    header_keyword_weight: float = 0.15
    header_consistency_weight: float = 0.20
    header_position_rows: int = 10               # Linear decay window
    type_consistency_ratio: float = 0.7          # Share of one type per column
    type_consistency_window: int = 5             # Rows inspected below a header

    # Region extent and quality
    empty_row_run: int = 3                       # Consecutive empty rows ending a region
    duplicate_name_penalty: float = 0.2
    generated_name_penalty: float = 0.1          # Multiplied by fraction of generated names
    sparse_density: float = 0.3
    sparse_density_penalty: float = 0.3
    low_density: float = 0.5
    low_density_penalty: float = 0.1
    min_data_rows: int = 2
    few_rows_penalty: float = 0.3
    min_columns: int = 2
    few_columns_penalty: float = 0.2
    headerless_quality_cap: float = 0.5

    # Normalisation and classification
    coercion_ratio: float = 0.8                  # Numeric / date coercion acceptance
    pattern_ratio: float = 0.8                   # Email / URL / phone
    unique_id: float = 0.95
    sequential_tolerance: float = 0.01
    sequential_id_confidence: float = 0.95
    numeric_id_confidence: float = 0.85
    enum_max_ratio: float = 0.1
    enum_max_distinct: int = 20
    text_confidence: float = 0.8

    # Entity scoring
    missing_pk_penalty: float = 0.3
    empty_column_penalty: float = 0.1

    # Relationships
    name_weight: float = 0.5
    value_overlap_weight: float = 0.3
    type_weight: float = 0.2
    relationship_accept: float = 0.6
    relationship_review: float = 0.75
    formula_reference_resolved: float = 0.9
    formula_reference_unresolved: float = 0.8

    # Formulas
    unresolved_reference_penalty: float = 0.1
    nesting_penalty: float = 0.1
    nesting_free_depth: int = 2
    generic_formula_confidence: float = 0.5
    max_formula_nodes: int = 500

    # Overall scoring
    structure_weight: float = 0.3
    entity_weight: float = 0.4
    relationship_score_weight: float = 0.3
    neutral_relationship_score: float = 0.5
    low_entity_confidence: float = 0.6

    @classmethod
    def from_env(cls) -> 'DetectionThresholds':
        """Override any threshold with SHEET_ENGINE_<FIELD_NAME> variables"""
        overrides = {}
        for f in fields(cls):
            env_name = f"SHEET_ENGINE_{f.name.upper()}"
            if env_name in os.environ:
                if f.type in (int, 'int'):
                    overrides[f.name] = _env_int(env_name, f.default)
                else:
                    overrides[f.name] = _env_float(env_name, f.default)
        return cls(**overrides)


@dataclass
class EngineConfig:
    """Configuration for an analysis run"""

    thresholds: DetectionThresholds = field(default_factory=DetectionThresholds)

    # Parallelism (1 = sequential)
    max_workers: int = 4

    # Sampling
    sample_values_count: int = 5
    csv_sample_bytes: int = 65536
    csv_sample_lines: int = 50

    # Output metadata
    engine_version: str = "1.0.0"
    schema_version: str = "1.0"

    @classmethod
    def from_env(cls) -> 'EngineConfig':
        """Create config from environment variables"""
        return cls(
            thresholds=DetectionThresholds.from_env(),
            max_workers=_env_int("SHEET_ENGINE_MAX_WORKERS", 4),
            sample_values_count=_env_int("SHEET_ENGINE_SAMPLE_VALUES", 5),
            csv_sample_bytes=_env_int("SHEET_ENGINE_CSV_SAMPLE_BYTES", 65536),
            csv_sample_lines=_env_int("SHEET_ENGINE_CSV_SAMPLE_LINES", 50),
            engine_version=os.getenv("SHEET_ENGINE_VERSION", "1.0.0"),
            schema_version=os.getenv("SHEET_ENGINE_SCHEMA_VERSION", "1.0"),
        )
