from typing import Dict, Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Azure Communication Services
    ACS_CONNECTION_STRING: str = "endpoint=https://your_acs_resource.communication.azure.com/;accesskey=your_access_key"
    ACS_PHONE_NUMBER: str = "+1234567890"
    CALLBACK_BASEURL: str = "https://example.com/api/callbacks"
    COGNITIVE_SERVICES_ENDPOINT: str = "https://your_cognitive_services.cognitiveservices.azure.com/"

    # Azure OpenAI
    AZURE_OPENAI_SERVICE_ENDPOINT: str = "https://your_aoai_endpoint"
    AZURE_OPENAI_DEPLOYMENT_NAME: str = "your_aoai_deployment_name"
    AZURE_OPENAI_SERVICE_KEY: str = "your_aoai_service_key"
    AZURE_OPENAI_API_VERSION: str = "2024-06-01"
    DIALOGUE_TIMEOUT_SECONDS: float = 15.0
    DIALOGUE_MAX_TOKENS: int = 300
    DIALOGUE_TEMPERATURE: float = 0.4

    # 会話
    TERMINATION_MARKER: str = "[END_CALL]"
    DEFAULT_LANGUAGE: str = "es"
    VOICE_NAMES: Dict[str, str] = {"es": "es-MX-DaliaNeural", "en": "en-US-JennyNeural"}
    SPEECH_LOCALES: Dict[str, str] = {"es": "es-MX", "en": "en-US"}
    INITIAL_SILENCE_TIMEOUT_SECONDS: int = 10
    END_SILENCE_TIMEOUT_SECONDS: int = 2

    LOG_LEVEL: Optional[str] = "info"
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    class Config:
        env_file = ".env"

settings = Settings()
