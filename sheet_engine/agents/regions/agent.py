"""
RegionDetector - finds header rows and the data blocks beneath them
"""
from dataclasses import replace
from typing import List, Optional
import logging

from .models import DataRegion, HeaderCandidate
from .header_scorer import HeaderScorer
from .extent import RegionExtentFinder, generated_column_name
from .quality import RegionQualityScorer
from ..loader.models import RawSheet
from ...config import EngineConfig
from ...errors import NoRegionDetectedError
from ...observability import trace_agent

logger = logging.getLogger(__name__)


class RegionDetector:
    """
    Region Detector - header scoring, extent detection and quality scoring

    Every row scoring above the header threshold seeds a candidate region.
    Every candidate is built into a region before any is discarded; of
    overlapping regions only the best quality one survives. The surviving
    regions are returned best quality first.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        self.thresholds = self.config.thresholds

        self.header_scorer = HeaderScorer(self.thresholds)
        self.extent_finder = RegionExtentFinder(self.thresholds)
        self.quality_scorer = RegionQualityScorer(self.thresholds)

    @trace_agent("RegionDetector")
    def detect(self, sheet: RawSheet) -> List[DataRegion]:
        """
        Detect data regions in a sheet

        Args:
            sheet: Raw sheet from the loader

        Returns:
            Regions sorted by quality, primary first

        Raises:
            NoRegionDetectedError: neither a header candidate nor the
                headerless fallback produced a region with data rows
        """
        if sheet.n_rows == 0:
            raise NoRegionDetectedError(sheet.name, "sheet is empty")

        candidates = [
            c for c in self.header_scorer.score_rows(sheet)
            if c.score > self.thresholds.header_candidate
        ]
        candidates.sort(key=lambda c: (-c.score, c.row))
        logger.debug(f"Sheet '{sheet.name}': {len(candidates)} header candidate(s)")

        regions = self._select_regions(sheet, candidates)

        if not regions:
            fallback = self._headerless_region(sheet)
            if fallback is None:
                raise NoRegionDetectedError(sheet.name, "no header row and no data rows found")
            logger.warning(f"Sheet '{sheet.name}': no header row found, using headerless fallback")
            return [fallback]

        if len(regions) > 1:
            primary = regions[0]
            message = f"sheet contains {len(regions)} regions; only the primary was analyzed"
            regions[0] = replace(primary, warnings=primary.warnings + (message,))
            logger.info(f"Sheet '{sheet.name}': {message}")

        logger.info(
            f"Sheet '{sheet.name}': primary region rows {regions[0].header_row}-{regions[0].data_end_row}, "
            f"{regions[0].n_columns} columns, quality {regions[0].quality_score:.2f}"
        )
        return regions

    def _select_regions(self, sheet: RawSheet, candidates: List[HeaderCandidate]) -> List[DataRegion]:
        """
        Build a region for every candidate, then keep the best of each overlapping group

        A candidate whose header row is a data row of a region with a
        stronger header is a record of that table, not a header. Remaining
        overlaps keep the higher quality region, header score breaking ties.
        """
        built = [r for r in (self._build_region(sheet, c) for c in candidates) if r is not None]
        built = [
            r for r in built
            if not any(other.holds_row_of(r) and other.header_score > r.header_score for other in built)
        ]
        built.sort(key=lambda r: (-r.quality_score, -r.header_score, r.header_row))

        regions: List[DataRegion] = []
        for region in built:
            if any(region.overlaps(accepted) for accepted in regions):
                logger.debug(
                    f"Discarding region at row {region.header_row} (quality {region.quality_score:.2f}): "
                    f"overlaps a better region"
                )
                continue
            regions.append(region)
        return regions

    def _build_region(self, sheet: RawSheet, candidate: HeaderCandidate) -> Optional[DataRegion]:
        span = self.extent_finder.column_span(sheet, candidate.row)
        if span is None:
            return None
        start_col, end_col = span

        rows = self.extent_finder.find_data_rows(sheet, candidate.row, start_col, end_col)
        if rows is None:
            return None
        data_start, data_end = rows

        names, generated = self.extent_finder.header_names(sheet, candidate.row, start_col, end_col)
        report = self.quality_scorer.score(sheet, names, generated, data_start, data_end, start_col, end_col)

        warnings = tuple(f"{name} (-{penalty:.2f})" for name, penalty in report.penalties)
        return DataRegion(
            sheet_name=sheet.name,
            header_row=candidate.row,
            data_start_row=data_start,
            data_end_row=data_end,
            start_col=start_col,
            end_col=end_col,
            column_names=tuple(names),
            quality_score=report.score,
            header_score=candidate.score,
            warnings=warnings,
        )

    def _headerless_region(self, sheet: RawSheet) -> Optional[DataRegion]:
        """First non-empty row becomes a pseudo-header with generated names"""
        first = next((r for r in range(sheet.n_rows) if not sheet.is_row_empty(r)), None)
        if first is None:
            return None

        span = self.extent_finder.column_span(sheet, first)
        start_col, end_col = span
        rows = self.extent_finder.find_data_rows(sheet, first, start_col, end_col)
        if rows is None:
            return None
        data_start, data_end = rows

        names = [generated_column_name(c) for c in range(start_col, end_col + 1)]
        report = self.quality_scorer.score(sheet, names, len(names), data_start, data_end, start_col, end_col)

        return DataRegion(
            sheet_name=sheet.name,
            header_row=first,
            data_start_row=data_start,
            data_end_row=data_end,
            start_col=start_col,
            end_col=end_col,
            column_names=tuple(names),
            quality_score=min(report.score, self.thresholds.headerless_quality_cap),
            header_score=0.0,
            headerless=True,
            warnings=(f"no header row detected in sheet '{sheet.name}'; column names were generated",),
        )
