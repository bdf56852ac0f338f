"""Finance action analysis endpoints: analyse a request, list the action catalog."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from finops.core.config import get_settings
from finops.core.dependencies import get_action_catalog, get_db
from finops.schemas.customer import CustomerSummary
from finops.services.ai.action_analysis.catalog import ActionCatalog
from finops.services.ai.action_analysis.contracts import AnalysisRequest, DateRange, ParsedAction
from finops.services.customer_service import CustomerNotFoundError, InvalidCustomerIdentifierError

router = APIRouter()


def _ensure_action_analysis_enabled() -> None:
    settings = get_settings()
    if not settings.enable_action_analysis:
        raise HTTPException(404, "Not found")


class ActionAnalysisResponse(BaseModel):
    content: str
    original_content: str = Field(serialization_alias="originalContent")
    finance_action_types: list[str] = Field(serialization_alias="financeActionTypes")
    customer: CustomerSummary
    actions: list[ParsedAction]
    date_range: Optional[DateRange] = Field(default=None, serialization_alias="dateRange")
    used_fallback: bool = Field(serialization_alias="usedFallback")
    provider: str
    model: str
    latency_ms: float = Field(serialization_alias="latencyMs")


class FinanceActionTypeResponse(BaseModel):
    code: str
    name: str
    description: str
    sample_prompt: str = Field(serialization_alias="samplePrompt")
    parameter_template: dict[str, Any] = Field(serialization_alias="parameterTemplate")
    sort_order: int = Field(serialization_alias="sortOrder")


@router.post(
    "/action-analysis",
    response_model=ActionAnalysisResponse,
    summary="Route a customer request to finance actions via AI",
)
async def analyze_action_endpoint(
    body: AnalysisRequest,
    db: Session = Depends(get_db),
    catalog: ActionCatalog = Depends(get_action_catalog),
):
    _ensure_action_analysis_enabled()

    from finops.services.ai.action_analysis.service import ModelCallError, analyze_action

    try:
        result = await analyze_action(body, db, catalog=catalog)
    except InvalidCustomerIdentifierError as e:
        raise HTTPException(422, str(e)) from e
    except CustomerNotFoundError as e:
        raise HTTPException(404, str(e)) from e
    except ModelCallError as e:
        raise HTTPException(502, "AI provider unavailable") from e

    return ActionAnalysisResponse(
        content=result.reconciled_text,
        original_content=result.original_content,
        finance_action_types=result.selected_actions,
        customer=result.customer_summary,
        actions=result.actions,
        date_range=result.date_range,
        used_fallback=result.used_fallback,
        provider=result.provider,
        model=result.model,
        latency_ms=result.latency_ms,
    )


@router.get("/action-analysis/health")
def action_analysis_health():
    return {"status": "ok"}


@router.get(
    "/finance-action-types",
    response_model=list[FinanceActionTypeResponse],
    summary="List the finance action catalog",
)
def list_finance_action_types(catalog: ActionCatalog = Depends(get_action_catalog)):
    return [
        FinanceActionTypeResponse(
            code=d.code,
            name=d.name,
            description=d.description,
            sample_prompt=d.sample_prompt,
            parameter_template=d.template_dict(),
            sort_order=d.sort_order,
        )
        for d in catalog.definitions()
    ]
