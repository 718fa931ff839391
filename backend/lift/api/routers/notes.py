import asyncio
import logging
from fastapi import APIRouter, Depends, Request

from lift.api.schemas import ERROR_RESPONSES, NotesResponse
from lift.api.state import get_completion_client
from lift.api.utils import read_notes_input, run_until_disconnect
from lift.bot import Bot
from lift.llm.base import BaseCompletionClient
from lift.models.request import TaskType
from lift.utils.logging_utils import set_task_context

logger = logging.getLogger("lift.api.notes")
router = APIRouter()


@router.post("/api/notes", response_model=NotesResponse, responses=ERROR_RESPONSES)
async def generate_notes(request: Request, llm: BaseCompletionClient = Depends(get_completion_client)):
    """Summaries and flashcards for pasted notes and/or uploaded PDF/PPTX files."""
    set_task_context(TaskType.NOTES.value)
    notes, documents = await read_notes_input(request)
    logger.info("Notes requested; notes_chars=%d files=%d", len(notes or ""), len(documents))
    bot = Bot(llm=llm)
    # Blocks are extracted and validated before any upstream call
    blocks = await asyncio.to_thread(bot.collect_blocks, notes, documents)
    result = await run_until_disconnect(request, bot.process_blocks(blocks))
    return result
