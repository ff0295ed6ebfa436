"""Customer-support swarm used by the CLI.

A triage queen routes the user to a billing or a technical agent. The
specialists can look things up in the shared context, record what they
learned back into it, and hand the conversation back to triage.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

from pydantic import BaseModel, Field

from agent_swarm.agents.base import Agent
from agent_swarm.tools.base import FunctionTool, HandoverResult, HandoverTool, ToolOutput, handover_to


class LookupInvoiceArgs(BaseModel):
    invoice_id: str = Field(description="Invoice number as quoted by the customer.")
    swarm_context: Dict[str, Any] = Field(default_factory=dict)


class RecordIssueArgs(BaseModel):
    summary: str = Field(description="One-line summary of the customer's problem.")


class TransferArgs(BaseModel):
    reason: str = Field(description="Why the conversation is being transferred.")


def lookup_invoice(args: Dict[str, Any]) -> ToolOutput:
    invoices = args.get("swarm_context", {}).get("invoices", {})
    invoice = invoices.get(args["invoice_id"])
    if invoice is None:
        return ToolOutput(result=f"No invoice {args['invoice_id']} on file.")
    return ToolOutput(result=invoice, context={"last_invoice": args["invoice_id"]})


def record_issue(args: Dict[str, Any]) -> ToolOutput:
    return ToolOutput(result="Issue recorded.", context={"issue": args["summary"]})


def _triage_instructions(context: Mapping[str, Any]) -> str:
    customer = context.get("customer_name", "the customer")
    return (
        f"You are the front desk of a support team, speaking with {customer}. "
        "Work out whether the request is about billing or a technical problem and "
        "transfer the conversation to the matching specialist. Answer small talk yourself."
    )


def build_support_agents(specialist_max_turns: int | None = None) -> Dict[str, Agent]:
    triage = Agent(name="triage", instructions=_triage_instructions)

    billing = Agent(
        name="billing",
        instructions=lambda context: (
            "You handle invoices, refunds and payment questions. "
            f"Known issue so far: {context.get('issue', 'none')}. "
            "Transfer back to triage when the request is not about billing."
        ),
        tools={
            "lookup_invoice": FunctionTool(
                description="Look up an invoice by its number.",
                parameters=LookupInvoiceArgs,
                execute=lookup_invoice,
            ),
            "record_issue": FunctionTool(
                description="Remember the customer's problem for the rest of the conversation.",
                parameters=RecordIssueArgs,
                execute=record_issue,
            ),
            "transfer_to_triage": handover_to(triage),
        },
        max_turns=specialist_max_turns,
    )

    technical = Agent(
        name="technical",
        instructions="You troubleshoot product problems step by step. Transfer back to triage when done.",
        tools={
            "record_issue": FunctionTool(
                description="Remember the customer's problem for the rest of the conversation.",
                parameters=RecordIssueArgs,
                execute=record_issue,
            ),
            "transfer_to_triage": handover_to(triage),
        },
        max_turns=specialist_max_turns,
    )

    triage.register_tool(
        "transfer_to_billing",
        HandoverTool(
            description="Transfer the customer to the billing specialist.",
            parameters=TransferArgs,
            execute=lambda args: HandoverResult(agent=billing, context={"transfer_reason": args.get("reason")}),
        ),
    )
    triage.register_tool(
        "transfer_to_technical",
        HandoverTool(
            description="Transfer the customer to the technical specialist.",
            parameters=TransferArgs,
            execute=lambda args: HandoverResult(agent=technical, context={"transfer_reason": args.get("reason")}),
        ),
    )
    return {"triage": triage, "billing": billing, "technical": technical}
