from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class GenerateDailyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    brand_id: UUID | None = Field(None, alias="brandId")
    manual: bool = False
    from_cron: bool = Field(False, alias="fromCron")


class ProviderCounts(BaseModel):
    attempted: int = 0
    ok: int = 0
    noResult: int = 0
    errors: int = 0


class ReportSummaryResponse(BaseModel):
    reportId: str
    generated: bool
    perplexity: ProviderCounts
    googleAIOverview: ProviderCounts
    chatgpt: ProviderCounts
    isComplete: bool
    status: str
    error: str | None = None


class StageStatus(BaseModel):
    name: str
    status: str
    label: str


class ReportProgress(BaseModel):
    percentage: int
    completedStages: int
    totalStages: int
    currentStage: str
    stages: list[StageStatus]


class ReportStatusResponse(BaseModel):
    reportId: str
    status: str
    completed: bool
    isComplete: bool
    failed: bool
    progress: ReportProgress
    stats: dict
    error: str | None = None
    timestamps: dict
