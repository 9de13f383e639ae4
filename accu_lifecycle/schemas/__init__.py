from accu_lifecycle.schemas.applications import (
    AnalyticsOut,
    ApiEnvelope,
    ApiError,
    ApplicationCreate,
    ApplicationData,
    ApplicationOut,
    ApplicationQuery,
    ApplicationUpdate,
    ApprovalRequest,
    ContactPerson,
    DashboardOut,
    DeadlineOut,
    DocumentLinkRequest,
    DocumentOut,
    FinalApprovalRequest,
    HistoryEntryOut,
    IssueRequest,
    ProjectSummary,
    RejectionRequest,
    ReviewRequest,
    StatsOut,
    StatusChangeRequest,
    StatusInfoOut,
    SubmissionRequest,
)

__all__ = [
    "AnalyticsOut",
    "ApiEnvelope",
    "ApiError",
    "ApplicationCreate",
    "ApplicationData",
    "ApplicationOut",
    "ApplicationQuery",
    "ApplicationUpdate",
    "ApprovalRequest",
    "ContactPerson",
    "DashboardOut",
    "DeadlineOut",
    "DocumentLinkRequest",
    "DocumentOut",
    "FinalApprovalRequest",
    "HistoryEntryOut",
    "IssueRequest",
    "ProjectSummary",
    "RejectionRequest",
    "ReviewRequest",
    "StatsOut",
    "StatusChangeRequest",
    "StatusInfoOut",
    "SubmissionRequest",
]
