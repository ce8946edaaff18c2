"""Tools module: store reads exposed to the model."""

from practice_flows.tools.data_access import (
    DEFAULT_ENGAGEMENT_HOURS,
    ToolContext,
    resolve_client_manager,
)
from practice_flows.tools.definitions import (
    ALL_TOOLS,
    GENERATE_EMAIL_TOOLS,
    GENERATE_INVOICE_TOOLS,
    LEAVE_REQUEST_TOOLS,
    PERFORMANCE_REVIEW_TOOLS,
    PROCESS_EMAIL_TOOLS,
    REALLOCATION_TOOLS,
    SCHEDULE_ENGAGEMENTS_TOOLS,
    ToolSpec,
)
from practice_flows.tools.executor import ToolExecutor

__all__ = [
    # Data access
    "DEFAULT_ENGAGEMENT_HOURS",
    "ToolContext",
    "resolve_client_manager",
    # Tool Definitions
    "ToolSpec",
    "ALL_TOOLS",
    "PROCESS_EMAIL_TOOLS",
    "SCHEDULE_ENGAGEMENTS_TOOLS",
    "GENERATE_EMAIL_TOOLS",
    "GENERATE_INVOICE_TOOLS",
    "LEAVE_REQUEST_TOOLS",
    "PERFORMANCE_REVIEW_TOOLS",
    "REALLOCATION_TOOLS",
    # Tool Executor
    "ToolExecutor",
]
