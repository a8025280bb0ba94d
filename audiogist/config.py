"""Configuration and constants for audiogist"""

import os
import tempfile
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Directories
BASE_DIR = Path.cwd()
STORAGE_DIR = Path(os.getenv("AUDIOGIST_STORAGE_DIR", str(BASE_DIR / "storage_data")))
TEMP_DIR = Path(os.getenv("AUDIOGIST_TEMP_DIR", tempfile.gettempdir()))
PROMPTS_DIR = BASE_DIR / "prompts"

# Storage containers
EPISODES_CONTAINER = os.getenv("EPISODES_CONTAINER", "episodes")
TRANSCRIPTS_CONTAINER = os.getenv("TRANSCRIPTS_CONTAINER", "transcripts")
SUMMARIES_CONTAINER = os.getenv("SUMMARIES_CONTAINER", "summaries")

# Chunking - the Whisper limit is 25MB, 5MB keeps calls fast with plenty of headroom
MAX_AUDIO_FILE_SIZE_BYTES = int(os.getenv("MAX_AUDIO_FILE_SIZE_BYTES", str(5 * 1024 * 1024)))
CHUNK_OVERLAP_SECONDS = 1
MIN_CHUNK_SECONDS = 60
MAX_CHUNK_SECONDS = 600
CHUNK_SAFETY_FACTOR = 0.9
TRANSCRIPTION_CONCURRENCY = int(os.getenv("TRANSCRIPTION_CONCURRENCY", "10"))

# Summary length: 5 minutes of narration at 150 wpm
WORDS_PER_MINUTE = 150
SUMMARY_TARGET_WORDS = 750
SUMMARY_MAX_WORDS = 800

# API keys and endpoints
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
AZURE_OPENAI_ENDPOINT = os.getenv("AZURE_OPENAI_ENDPOINT")
AZURE_OPENAI_API_KEY = os.getenv("AZURE_OPENAI_API_KEY")
AZURE_OPENAI_API_VERSION = os.getenv("AZURE_OPENAI_API_VERSION", "2024-10-21")

# Models (deployment names when running against Azure)
TRANSCRIPTION_MODEL = os.getenv("TRANSCRIPTION_MODEL", "whisper-1")
SUMMARY_MODEL = os.getenv("SUMMARY_MODEL", "gpt-4o")
SUMMARY_TEMPERATURE = float(os.getenv("SUMMARY_TEMPERATURE", "1.0"))
SPEECH_MODEL = os.getenv("SPEECH_MODEL", "gpt-4o-mini-tts")
SPEECH_VOICE = os.getenv("SPEECH_VOICE", "alloy")
SPEECH_SPEED = float(os.getenv("SPEECH_SPEED", "1.0"))
SPEECH_FORMAT = os.getenv("SPEECH_FORMAT", "mp3")

# Network
DOWNLOAD_TIMEOUT_SECONDS = int(os.getenv("DOWNLOAD_TIMEOUT_SECONDS", "600"))

# Progress streaming
PROGRESS_QUEUE_SIZE = int(os.getenv("PROGRESS_QUEUE_SIZE", "100"))
PROGRESS_PUT_TIMEOUT = float(os.getenv("PROGRESS_PUT_TIMEOUT", "30.0"))

# Feature flags
USE_MOCK_SERVICES = os.getenv("USE_MOCK_SERVICES", "false").lower() == "true"
MOCK_DELAY_SECONDS = float(os.getenv("MOCK_DELAY_SECONDS", "2.0"))
