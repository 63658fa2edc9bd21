"""Exception hierarchy for revenue_analysis."""


class RevenueAnalysisError(Exception):
    """Base exception for all revenue_analysis errors."""


class ConfigError(RevenueAnalysisError):
    """Invalid or missing configuration."""


class DataLoadError(RevenueAnalysisError):
    """Failed to load or parse a source file."""


class ColumnMismatchError(DataLoadError):
    """Mandatory merchant identity columns missing from a sheet."""

    def __init__(self, missing: set[str], available: set[str]) -> None:
        self.missing = missing
        self.available = available
        super().__init__(f"Missing required columns: {sorted(missing)}")


class MissingRevenueError(RevenueAnalysisError):
    """A processor that reports revenue as ``net`` delivered a row without it."""

    def __init__(self, processor: str, merchant_id: str, merchant_name: str) -> None:
        self.processor = processor
        self.merchant_id = merchant_id
        self.merchant_name = merchant_name
        super().__init__(
            f"{processor} record for {merchant_name} ({merchant_id}) has no Net value"
        )


class AnalysisError(RevenueAnalysisError):
    """An individual analysis failed."""

    def __init__(self, analysis_name: str, cause: Exception) -> None:
        self.analysis_name = analysis_name
        self.cause = cause
        super().__init__(f"Analysis '{analysis_name}' failed: {cause}")
