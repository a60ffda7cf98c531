# Infrastructure clients
from clients.vault_client import (
    VaultClient,
    get_database_url,
    get_jwt_config,
    get_openai_config,
)
from clients.postgres_client import PostgresClient
from clients.llm_client import LLMClient, LLMError, LLMTimeoutError
from clients.speech_client import SpeechToTextClient, SpeechToTextError, SpeechToTextTimeout
