"""
AI chat endpoint backed by the company's configured AI providers.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from wacrm.api.deps import CompanyContext, get_company_context
from wacrm.db import schemas
from wacrm.db.database import get_db
from wacrm.services.ai_completion_client import AiCompletionClient
from wacrm.services.api_key_protector import ApiKeyDecryptionError
from wacrm.utils.feature_flags import ai_features_enabled

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/chat", response_model=schemas.AiChatResponse)
def chat(
    payload: schemas.AiChatRequest,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    """Provider failures come back as ``success: false``, not as HTTP errors."""
    if not ai_features_enabled():
        raise HTTPException(status_code=503, detail="AI features are currently disabled")
    try:
        result = AiCompletionClient(db).send_chat(
            ctx.company_id,
            payload.provider_key,
            payload.system_prompt,
            payload.messages,
            payload.options,
        )
    except ApiKeyDecryptionError:
        raise HTTPException(status_code=409, detail="Stored API key cannot be decrypted; save the key again.")
    return schemas.AiChatResponse(
        success=result.success,
        content=result.content,
        error=result.error,
        status_code=result.status_code,
        provider_key=result.provider_key,
    )
