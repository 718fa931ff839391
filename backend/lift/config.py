import os

# Completion service
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"
MODEL = os.getenv("LIFT_MODEL", "openai:gpt-4o-mini")
TEMPERATURE = float(os.getenv("LIFT_TEMPERATURE", "0.7"))
REQUEST_TIMEOUT = float(os.getenv("LIFT_REQUEST_TIMEOUT", "60"))
MAX_CONCURRENCY = int(os.getenv("LIFT_MAX_CONCURRENCY", "4"))

# Notes pipeline
MAX_BLOCK_CHARS = int(os.getenv("LIFT_MAX_BLOCK_CHARS", "4000"))
MAX_TEXT_BLOCKS = int(os.getenv("LIFT_MAX_TEXT_BLOCKS", "10"))
MAX_FLASHCARDS = int(os.getenv("LIFT_MAX_FLASHCARDS", "12"))
FLASHCARDS_MIN_PER_BLOCK = 3
FLASHCARDS_MAX_PER_BLOCK = 5

# Uploads
MAX_UPLOAD_BYTES = int(os.getenv("LIFT_MAX_UPLOAD_BYTES", str(15 * 1024 * 1024)))
PDF_MIME = "application/pdf"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
ALLOWED_UPLOAD_TYPES = {
    PDF_MIME: ".pdf",
    PPTX_MIME: ".pptx",
}

# HTTP
CORS_ORIGINS = [o.strip() for o in os.getenv("LIFT_CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
DISCONNECT_POLL_SECONDS = 0.5

LOG_LEVEL = os.getenv("LIFT_LOG_LEVEL", "INFO").upper()
