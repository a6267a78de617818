"""Member Schemas — registration input and member/outcome responses.

Invariants:
    - RegisterMemberRequest.name: 1-200 chars, stripped, non-empty
    - upline_code and side are supplied together or not at all
    - Codes are stripped; empty strings become None
    - Money fields are Decimal (serialized as strings, never floats)

Design Decisions:
    - network_attachment reports placed / unplaced / rejected so a caller can tell
      "no referrer" apart from "slot was taken"
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from binary_network.core.domain_types import MemberNode, PairCredit, Side
from binary_network.core.referral_codes import normalize_code
from binary_network.services.registration import RegistrationOutcome


class RegisterMemberRequest(BaseModel):
    """Registration input from the account system."""
    name: str = Field(min_length=1, max_length=200)
    email: str | None = Field(None, max_length=320)
    referral_code: str | None = Field(
        None, max_length=32, pattern=r"^\s*[A-Za-z0-9_-]*\s*$",
    )
    referrer_code: str | None = Field(None, max_length=32)
    upline_code: str | None = Field(None, max_length=32)
    side: Side | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v

    @field_validator("referral_code", "referrer_code", "upline_code")
    @classmethod
    def strip_codes(cls, v: str | None) -> str | None:
        return normalize_code(v)

    @model_validator(mode="after")
    def check_manual_placement(self) -> "RegisterMemberRequest":
        if (self.upline_code is None) != (self.side is None):
            raise ValueError("upline_code and side must be given together")
        return self


class MemberResponse(BaseModel):
    """Public member record, including counters and income totals."""
    id: str | None
    referral_code: str
    name: str
    email: str | None
    referred_by: str | None
    referral_count: int
    upline_code: str | None
    left_child_code: str | None
    right_child_code: str | None
    left_count: int
    right_count: int
    pairs_count: int
    promotional_income: Decimal
    total_income: Decimal
    created_at: datetime | None = None

    @classmethod
    def from_node(cls, node: MemberNode) -> "MemberResponse":
        return cls(
            id=str(node.id) if node.id else None,
            referral_code=node.referral_code,
            name=node.name,
            email=node.email,
            referred_by=node.referred_by,
            referral_count=node.referral_count,
            upline_code=node.upline_code,
            left_child_code=node.left_child_code,
            right_child_code=node.right_child_code,
            left_count=node.left_count,
            right_count=node.right_count,
            pairs_count=node.pairs_count,
            promotional_income=node.promotional_income,
            total_income=node.total_income,
            created_at=node.created_at,
        )


class PairCreditResponse(BaseModel):
    member_code: str
    pairs: int
    pairs_total_after: int
    amount: Decimal
    event_code: str | None
    source: str

    @classmethod
    def from_credit(cls, credit: PairCredit) -> "PairCreditResponse":
        return cls(
            member_code=credit.member_code,
            pairs=credit.new_pairs,
            pairs_total_after=credit.total_pairs,
            amount=credit.amount,
            event_code=credit.event_code,
            source=credit.source.value,
        )


class NetworkAttachmentResponse(BaseModel):
    """Where (and whether) the member was attached to the tree."""
    status: Literal["placed", "unplaced", "rejected"]
    parent_code: str | None = None
    side: Side | None = None
    reason: str | None = None
    message: str | None = None


class PropagationResponse(BaseModel):
    event_code: str
    state: str
    ancestors_visited: list[str]
    credits: list[PairCreditResponse]
    total_credited: Decimal
    error_code: str | None = None
    error_message: str | None = None


class RegistrationResponse(BaseModel):
    member: MemberResponse
    network_attachment: NetworkAttachmentResponse
    propagation: PropagationResponse | None = None

    @classmethod
    def from_outcome(cls, outcome: RegistrationOutcome) -> "RegistrationResponse":
        if outcome.placement is not None:
            attachment = NetworkAttachmentResponse(
                status="placed",
                parent_code=outcome.placement.parent_code,
                side=outcome.placement.side,
            )
        elif outcome.placement_error is not None:
            attachment = NetworkAttachmentResponse(
                status="rejected",
                reason=outcome.placement_error.code,
                message=outcome.placement_error.message,
            )
        else:
            attachment = NetworkAttachmentResponse(status="unplaced")

        propagation = None
        if outcome.propagation is not None:
            error = outcome.propagation_error
            propagation = PropagationResponse(
                event_code=outcome.propagation.event_code,
                state=outcome.propagation.state.value,
                ancestors_visited=outcome.propagation.ancestors_visited,
                credits=[
                    PairCreditResponse.from_credit(c)
                    for c in outcome.propagation.credits
                ],
                total_credited=outcome.propagation.total_credited,
                error_code=error.code if error else None,
                error_message=error.message if error else None,
            )

        return cls(
            member=MemberResponse.from_node(outcome.member),
            network_attachment=attachment,
            propagation=propagation,
        )
