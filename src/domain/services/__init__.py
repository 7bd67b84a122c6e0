"""Domain services."""

from src.domain.services.analysis_gateway import (
    AnalysisGateway,
    AnalysisOutcome,
    FaceValidation,
    GatewayFailure,
    GatewayFailureKind,
    OpenAIAnalysisGateway,
)
from src.domain.services.auth_service import AuthService
from src.domain.services.checkin_workflow import (
    CheckInAlreadyCompletedError,
    CheckInWorkflow,
    CheckInWorkflowRegistry,
    InvalidTransitionError,
    RejectionReason,
    WorkflowInProgressError,
    WorkflowSnapshot,
    WorkflowState,
)
from src.domain.services.demo_data import DemoDataService
from src.domain.services.risk_engine import RiskAssessment, RiskEngine, RiskPolicy
from src.domain.services.team_overview import TeamOverview, TeamOverviewService

__all__ = [
    "AnalysisGateway",
    "AnalysisOutcome",
    "AuthService",
    "CheckInAlreadyCompletedError",
    "CheckInWorkflow",
    "CheckInWorkflowRegistry",
    "DemoDataService",
    "FaceValidation",
    "GatewayFailure",
    "GatewayFailureKind",
    "InvalidTransitionError",
    "OpenAIAnalysisGateway",
    "RejectionReason",
    "RiskAssessment",
    "RiskEngine",
    "RiskPolicy",
    "TeamOverview",
    "TeamOverviewService",
    "WorkflowInProgressError",
    "WorkflowSnapshot",
    "WorkflowState",
]
