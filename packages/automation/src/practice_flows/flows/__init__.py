"""Flow orchestrators, addressable by name."""

from collections.abc import Callable
from datetime import datetime

from practice_flows.config import FlatSettings
from practice_flows.flows.base import Flow
from practice_flows.flows.generate_email import GenerateEmailFlow
from practice_flows.flows.generate_invoice import GenerateInvoiceFlow
from practice_flows.flows.handle_leave_request import HandleLeaveRequestFlow
from practice_flows.flows.handle_performance_review import HandlePerformanceReviewFlow
from practice_flows.flows.process_email import ProcessEmailFlow
from practice_flows.flows.reallocate_engagements import ReallocateEngagementsFlow
from practice_flows.flows.schedule_engagements import ScheduleEngagementsFlow
from practice_flows.flows.send_email import SendBulkEmailFlow, SendEmailFlow
from practice_flows.inference import Inference
from practice_flows.store import DocumentStore
from practice_flows.tools.data_access import utc_now

FLOWS: dict[str, type[Flow]] = {
    flow.name: flow
    for flow in [
        ProcessEmailFlow,
        ScheduleEngagementsFlow,
        GenerateEmailFlow,
        GenerateInvoiceFlow,
        HandleLeaveRequestFlow,
        HandlePerformanceReviewFlow,
        ReallocateEngagementsFlow,
        SendEmailFlow,
        SendBulkEmailFlow,
    ]
}


def build_flows(
    store: DocumentStore,
    inference: Inference | None = None,
    settings: FlatSettings | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> dict[str, Flow]:
    """Instantiate every flow over one store and one inference backend."""
    return {
        name: flow_class(store, inference, settings=settings, clock=clock)
        for name, flow_class in FLOWS.items()
    }


__all__ = [
    "FLOWS",
    "Flow",
    "build_flows",
    "ProcessEmailFlow",
    "ScheduleEngagementsFlow",
    "GenerateEmailFlow",
    "GenerateInvoiceFlow",
    "HandleLeaveRequestFlow",
    "HandlePerformanceReviewFlow",
    "ReallocateEngagementsFlow",
    "SendEmailFlow",
    "SendBulkEmailFlow",
]
