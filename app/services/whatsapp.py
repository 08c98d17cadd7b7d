"""
Cliente Evolution API para WhatsApp.

`EvolutionClient` fala HTTP com a Evolution; `Mensageiro` e a fronteira
usada pelo resto da aplicacao: envio best effort, falha so gera log.
"""
from typing import Optional, Sequence
import logging

import httpx

from app.core.config import settings
from app.core.exceptions import ConfigurationError, ExternalAPIError
from app.core.logging import mascarar
from app.schemas.mensagem import Localizacao
from app.services.http_client import get_http_client

logger = logging.getLogger(__name__)


def numero_de(identificador: str) -> str:
    """'558499999999@s.whatsapp.net' -> '558499999999'."""
    return identificador.split("@", 1)[0]


class EvolutionClient:
    """Cliente para Evolution API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        self.base_url = (base_url or settings.EVOLUTION_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.EVOLUTION_API_KEY
        self.instance = instance or settings.EVOLUTION_INSTANCE

        if not self.api_key:
            raise ConfigurationError("EVOLUTION_API_KEY e obrigatorio")

    @property
    def headers(self) -> dict:
        return {
            "apikey": self.api_key,
            "Content-Type": "application/json",
        }

    async def _fazer_request(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        timeout: float = 30.0
    ) -> dict:
        """
        Faz request HTTP usando o cliente singleton.

        Raises:
            ExternalAPIError: Erro de rede ou resposta invalida
        """
        url = f"{self.base_url}{path}"
        client = await get_http_client()
        try:
            if method == "POST":
                response = await client.post(
                    url, json=payload, headers=self.headers, timeout=timeout
                )
            else:
                response = await client.get(url, headers=self.headers, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ExternalAPIError(
                f"Evolution respondeu {e.response.status_code}",
                service="evolution",
                details={"path": path},
                original_error=e,
            ) from e
        except httpx.HTTPError as e:
            raise ExternalAPIError(
                f"Falha de comunicacao com Evolution: {e}",
                service="evolution",
                details={"path": path},
                original_error=e,
            ) from e
        except ValueError as e:
            # 2xx com corpo que nao e JSON (ex: pagina de proxy)
            raise ExternalAPIError(
                "Resposta invalida da Evolution",
                service="evolution",
                details={"path": path},
                original_error=e,
            ) from e

    async def enviar_texto(
        self,
        destino: str,
        texto: str,
        mentions: Optional[Sequence[str]] = None,
    ) -> dict:
        """
        Envia mensagem de texto.

        Args:
            destino: JID ou LID do destinatario
            texto: Texto da mensagem (mencoes aparecem como @numero)
            mentions: JIDs/LIDs mencionados
        """
        payload = {
            "number": destino,
            "text": texto,
        }
        if mentions:
            payload["mentioned"] = [numero_de(m) for m in mentions]

        result = await self._fazer_request(
            "POST", f"/message/sendText/{self.instance}", payload
        )
        logger.debug(f"Texto enviado para {mascarar(destino)}")
        return result

    async def enviar_localizacao(
        self,
        destino: str,
        latitude: float,
        longitude: float,
        nome: str = "",
    ) -> dict:
        """Envia um pin de localizacao."""
        payload = {
            "number": destino,
            "latitude": latitude,
            "longitude": longitude,
            "name": nome,
            "address": "",
        }
        result = await self._fazer_request(
            "POST", f"/message/sendLocation/{self.instance}", payload
        )
        logger.debug(f"Localizacao enviada para {mascarar(destino)}")
        return result

    async def verificar_conexao(self) -> dict:
        """Verifica status da conexao WhatsApp."""
        return await self._fazer_request(
            "GET", f"/instance/connectionState/{self.instance}", timeout=10.0
        )


class Mensageiro:
    """
    Envio de mensagens para a central de corridas.

    Nunca levanta excecao: falhas sao logadas e reportadas como False.
    Nao ha reenvio.
    """

    def __init__(self, client: Optional[EvolutionClient] = None):
        self._client = client

    @property
    def client(self) -> EvolutionClient:
        if self._client is None:
            self._client = EvolutionClient()
        return self._client

    async def enviar(
        self,
        identificador: str,
        texto: Optional[str] = None,
        mentions: Optional[Sequence[str]] = None,
        localizacao: Optional[Localizacao] = None,
    ) -> bool:
        """
        Envia texto e/ou localizacao para um identificador.

        Returns:
            True se todas as partes foram enviadas
        """
        if not identificador:
            logger.warning("Envio ignorado: destinatario vazio")
            return False

        try:
            if texto:
                await self.client.enviar_texto(identificador, texto, mentions)
            if localizacao is not None:
                await self.client.enviar_localizacao(
                    identificador, localizacao.latitude, localizacao.longitude
                )
            return True
        except (ExternalAPIError, ConfigurationError) as e:
            logger.error(f"Falha ao enviar mensagem para {mascarar(identificador)}: {e}")
            return False
