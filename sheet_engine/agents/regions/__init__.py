"""Region detection: header rows, data extents and quality scores"""
from .agent import RegionDetector
from .models import DataRegion, HeaderCandidate, QualityReport

__all__ = ['RegionDetector', 'DataRegion', 'HeaderCandidate', 'QualityReport']
