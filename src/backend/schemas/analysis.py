# src/backend/schemas/analysis.py
from pydantic import BaseModel, ConfigDict, Field, StrictStr


class AnalyzeScanTrendsInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    historical_scan_data: StrictStr = Field(
        alias="historicalScanData",
        description="Historical scan data in JSON format.",
    )
    current_scan_data: StrictStr = Field(
        alias="currentScanData",
        description="Current scan data in JSON format.",
    )


class AnalyzeScanTrendsOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    analysis_summary: StrictStr = Field(
        alias="analysisSummary",
        description="A summary of the scan trend analysis.",
    )
    suggested_improvements: StrictStr = Field(
        alias="suggestedImprovements",
        description="Suggestions for game improvements based on the analysis.",
    )
