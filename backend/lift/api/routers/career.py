import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from lift.api.schemas import ERROR_RESPONSES, CareerRequest
from lift.api.state import get_completion_client
from lift.api.utils import run_until_disconnect
from lift.bot import Bot
from lift.llm.base import BaseCompletionClient

logger = logging.getLogger("lift.api.career")
router = APIRouter()


@router.post("/api/career", responses=ERROR_RESPONSES)
async def generate_career(
    req: CareerRequest,
    request: Request,
    llm: BaseCompletionClient = Depends(get_completion_client),
):
    """Structured resume (type=resume) or cover letter (type=cover) from raw form input."""
    generation = Bot.build_career_request(req.model_dump())
    logger.info("Career document requested; type=%s", generation.task_type.value)
    bot = Bot(llm=llm)
    document = await run_until_disconnect(request, bot.generate_career(generation))
    return JSONResponse(content={"result": document.model_dump()})
