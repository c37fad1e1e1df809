"""Calendar-year analysis."""

from .yearly import complete_years, filter_year, run_yearly_analysis

__all__ = ["complete_years", "filter_year", "run_yearly_analysis"]
