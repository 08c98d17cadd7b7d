"""
Configurações da aplicação.
Carrega variáveis de ambiente.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Configurações carregadas do .env"""

    # App
    APP_NAME: str = "Central de Corridas"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    # Evolution API
    EVOLUTION_API_URL: str = "http://localhost:8080"
    EVOLUTION_API_KEY: str = ""
    EVOLUTION_INSTANCE: str = "Corridas"

    # Motorista de teste: unico destinatario de corridas em modo teste (vazio = nenhum)
    TEST_DRIVER_JID: str = ""

    # Link do formulario enviado junto com os pedidos de avaliacao
    FEEDBACK_FORM_URL: str = "https://forms.gle/Ck9EoeRYVHbyQfMp6"

    # Restaurar temporizadores pendentes no startup
    RESTAURAR_TEMPORIZADORES: bool = True

    @property
    def is_production(self) -> bool:
        """Retorna True se está em produção."""
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignora variáveis extras do .env


class CorridasConfig:
    """
    Constantes de tempo e limites do fluxo de corridas.

    Todos os tempos em segundos.
    """

    # Conversa do passageiro
    TIMEOUT_CONVERSA: int = 5 * 60
    AVISO_CONVERSA: int = 150  # metade do timeout

    # Corrida transmitida
    INTERVALO_KEEPALIVE: int = 6 * 60
    TEMPO_ESPERA_MINIMO: int = 5  # minutos

    # Avaliacao
    ATRASO_AVALIACAO: int = 2 * 60 * 60
    PRAZO_AVALIACAO: int = 24 * 60 * 60

    # Reconfirmacao de motorista por CPF
    MAX_TENTATIVAS_CPF: int = 3

    # Cadastro de motorista (so em memoria)
    TIMEOUT_CADASTRO: int = 10 * 60
    AVISO_CADASTRO: int = 450

    # Historico
    LIMITE_HISTORICO: int = 5


@lru_cache()
def get_settings() -> Settings:
    """Retorna instância cacheada das configurações."""
    return Settings()


settings = get_settings()
