"""
AnalysisWorkflow - orchestrates the spreadsheet analysis pipeline
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import logging
import time

from .agents.loader import SpreadsheetLoader, LoadResult, RawSheet
from .agents.regions import RegionDetector
from .agents.normalizer import TableNormalizer, to_snake_case
from .agents.classifier import ColumnClassifier, ClassifiedTable
from .agents.architect import SchemaEntityBuilder, RelationshipFinder, RelationshipMerger, Entity, Relationship
from .agents.formulas import FormulaTranslator, CrossSheetReferenceFinder, SheetResolver, AutomationRule
from .agents.validator import ValidationScorer
from .agents.output import OutputGenerator, AnalysisDocuments
from .config import EngineConfig
from .errors import NoRegionDetectedError, NoUsableDataError
from .models import AnalysisResult, SheetAnalysis
from .observability import trace_workflow_step, observability

logger = logging.getLogger(__name__)


class AnalysisWorkflow:
    """
    Workflow orchestrator for the spreadsheet analysis pipeline.

    Loader -> per sheet (RegionDetector -> TableNormalizer -> ColumnClassifier)
    -> SchemaEntityBuilder -> RelationshipFinder + FormulaTranslator
    -> ValidationScorer, and OutputGenerator for run().

    Sheets are processed in parallel; every task returns its own
    SheetAnalysis and results are merged in workbook order.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()

        self.loader = SpreadsheetLoader(self.config)
        self.region_detector = RegionDetector(self.config)
        self.normalizer = TableNormalizer(self.config)
        self.classifier = ColumnClassifier(self.config)
        self.entity_builder = SchemaEntityBuilder(self.config)
        self.relationship_finder = RelationshipFinder(self.config)
        self.formula_translator = FormulaTranslator(self.config)
        self.reference_finder = CrossSheetReferenceFinder(self.config)
        self.merger = RelationshipMerger(self.config.thresholds.relationship_accept)
        self.validator = ValidationScorer(self.config)
        self.output_generator = OutputGenerator(self.config)

    def run(self, file_data: bytes, file_name: str) -> AnalysisDocuments:
        """Analyze a file and format the result into the four output documents"""
        result = self.analyze(file_data, file_name)
        return self.output_generator.generate(result)

    def analyze_file(self, path: str) -> AnalysisResult:
        """Analyze a spreadsheet stored on disk"""
        file_path = Path(path)
        return self.analyze(file_path.read_bytes(), file_path.name)

    def analyze(self, file_data: bytes, file_name: str) -> AnalysisResult:
        """
        Run the complete analysis

        Args:
            file_data: Raw file bytes
            file_name: Original file name (used for CSV sheet naming and reporting)

        Returns:
            AnalysisResult

        Raises:
            UnsupportedFormatError: content is not xlsx, xls or delimited text
            CorruptedFileError: the container could not be read at all
            NoUsableDataError: no sheet yielded a usable table
        """
        start_time = time.monotonic()
        observability.log_analysis_metrics(file_name, {
            "analysis_started": datetime.now(timezone.utc).isoformat(),
            "file_size": len(file_data),
        })

        try:
            loaded = self._run_loader_step(file_data, file_name)
            warnings: List[str] = list(loaded.warnings)

            sheet_results = self._run_sheet_steps(loaded)
            for sheet_result in sheet_results:
                warnings.extend(sheet_result.warnings)

            tables = {s.sheet_name: s.table for s in sheet_results if s.table is not None}
            if not tables:
                raise NoUsableDataError(f"No sheet in '{file_name}' contains usable data")

            entities = self._run_entity_step(tables, warnings)
            relationships, rules = self._run_relationship_step(loaded, entities)

            regions = {s.sheet_name: s.regions for s in sheet_results if s.regions}
            confidence = self.validator.score(
                entities,
                relationships,
                rules,
                [s.primary_region for s in sheet_results if s.table is not None],
                {name: len(found) for name, found in regions.items()},
                warnings,
            )

            duration = time.monotonic() - start_time
            result = AnalysisResult(
                source_file=file_name,
                file_format=loaded.file_format,
                entities=entities,
                relationships=relationships,
                rules=rules,
                confidence=confidence,
                regions=regions,
                named_ranges=loaded.named_ranges,
                warnings=warnings,
                duration_seconds=duration,
            )

            observability.log_analysis_metrics(file_name, {
                "analysis_completed": datetime.now(timezone.utc).isoformat(),
                "duration_seconds": duration,
                "entities": len(entities),
                "relationships": len(relationships),
                "rules": len(rules),
                "confidence": confidence.overall,
            })
            logger.info(
                f"Analyzed '{file_name}' in {duration:.2f}s: {len(entities)} entities, "
                f"{len(relationships)} relationships, {len(rules)} rules, confidence {confidence.overall:.2f}"
            )
            return result

        except Exception as e:
            logger.exception(f"Analysis failed for '{file_name}'")
            observability.log_analysis_metrics(file_name, {
                "analysis_failed": datetime.now(timezone.utc).isoformat(),
                "duration_seconds": time.monotonic() - start_time,
                "error": str(e),
            })
            raise

    @trace_workflow_step("loader", {"component": "spreadsheet_loader"})
    def _run_loader_step(self, file_data: bytes, file_name: str) -> LoadResult:
        return self.loader.load(file_data, file_name)

    @trace_workflow_step("sheets", {"component": "region_normalize_classify"})
    def _run_sheet_steps(self, loaded: LoadResult) -> List[SheetAnalysis]:
        sheets = sorted(loaded.sheets.values(), key=lambda s: s.index)
        if self.config.max_workers > 1 and len(sheets) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                return list(executor.map(self._analyze_sheet, sheets))
        return [self._analyze_sheet(sheet) for sheet in sheets]

    def _analyze_sheet(self, sheet: RawSheet) -> SheetAnalysis:
        """Region detection, normalization and classification for one sheet"""
        result = SheetAnalysis(sheet_name=sheet.name, sheet_index=sheet.index)
        try:
            result.regions = self.region_detector.detect(sheet)
        except NoRegionDetectedError as e:
            logger.warning(f"Skipping sheet '{sheet.name}': {e.reason}")
            result.warnings.append(f"Sheet '{sheet.name}' was skipped: {e.reason}")
            return result

        primary = result.primary_region
        if primary.headerless:
            result.warnings.extend(primary.warnings[:1])

        table = self.normalizer.normalize(primary, sheet)
        if table.row_count == 0 or not table.columns:
            logger.warning(f"Skipping sheet '{sheet.name}': region holds no usable data")
            result.warnings.append(f"Sheet '{sheet.name}' was skipped: region holds no usable data")
            return result

        result.table = self.classifier.classify_table(table)
        return result

    @trace_workflow_step("entities", {"component": "schema_entity_builder"})
    def _run_entity_step(self, tables: Dict[str, ClassifiedTable], warnings: List[str]) -> List[Entity]:
        entities = self.entity_builder.extract(tables)
        for entity in entities:
            base_name = to_snake_case(entity.source_sheet, fallback="table")
            if entity.table_name != base_name:
                warnings.append(
                    f"Sheet '{entity.source_sheet}' shares the table name '{base_name}' with another sheet; "
                    f"renamed to '{entity.table_name}'"
                )
        return entities

    @trace_workflow_step("relationships_and_formulas", {"component": "relationship_finder_formula_translator"})
    def _run_relationship_step(
        self,
        loaded: LoadResult,
        entities: List[Entity],
    ) -> Tuple[List[Relationship], List[AutomationRule]]:
        resolver = SheetResolver(entities, named_ranges=loaded.named_ranges)

        foreign_keys = self.relationship_finder.find(entities)
        references = self.reference_finder.find(loaded.sheets, entities, resolver)
        relationships = self.merger.deduplicate(foreign_keys + references)

        rules: List[AutomationRule] = []
        for entity in entities:
            sheet = loaded.sheets.get(entity.source_sheet)
            if sheet is not None:
                rules.extend(self.formula_translator.translate_table(sheet, entity, resolver))

        return relationships, rules
