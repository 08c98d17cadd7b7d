"""
Textos enviados pela central.

Passageiros recebem no idioma escolhido (en/pt); motoristas sempre em
portugues. Templates usam str.format.
"""
from typing import Optional

from .constantes import IDIOMA_PORTUGUES, TIPO_MOTOTAXI

_OPCOES_TENTAR = """1️⃣ - {sim}
2️⃣ - {nao}"""

TRADUCOES = {
    "en": {
        "aviso_timeout": "⚠️ Warning: You have 2 minutes and 30 seconds left to answer, or your session will timeout and you'll need to start over.",
        "sessao_expirada": '⏰ Your session has timed out due to inactivity. Please send "taxi" or "mototaxi" again to start a new ride request.',
        "tipo_veiculo": "🚖 What type of ride do you need?\n\n1️⃣ - Mototaxi 🏍️\n2️⃣ - Taxi 🚗",
        "tipo_veiculo_invalido": "❌ Please select 1 for Mototaxi or 2 for Taxi",
        "saudacao": "🚖 I'll help you find a ride - please answer some questions.",
        "nome": "What is your name?",
        "telefone": "📱 What is your phone number? (include country code, e.g., +55 84 9 1234-5678)",
        "telefone_invalido": "❌ Invalid phone format. Please include the country code starting with + (e.g., +55 84 9 1234-5678)",
        "local_texto": "📍 Where are you located? (describe your location in text)",
        "local_pin": "📍 Please send your location using WhatsApp's location sharing feature",
        "local_pin_invalido": "❌ Please share your location using WhatsApp's location feature (attach icon 📎 Location)",
        "destino": "🎯 Where do you want to go? (describe your destination)",
        "identificacao": "👕 What are you wearing or how can the driver identify you? (e.g., blue t-shirt, red cap)",
        "tempo_espera": "⏰ How many minutes are you willing to wait for your ride? (Minimum: 5 minutes)",
        "tempo_espera_invalido": "❌ Please enter a valid number of at least 5 minutes.",
        "confirmacao": """📋 *Please review your ride information:*

*Vehicle Type:* {veiculo}
*Name:* {nome}
*Phone:* {telefone}
*Location:* {local}
*Destination:* {destino}
*Identifier:* {identificacao}
*Wait Time:* {tempo_espera} minutes

Is this information correct?

Reply:
*CONFIRM* - to send your ride request
*CANCEL* - to cancel and start over""",
        "confirmacao_invalida": "❌ Please reply with *CONFIRM* to proceed or *CANCEL* to cancel.",
        "cancelada": '❌ Ride request cancelled. Send "taxi" or "mototaxi" to start a new request.',
        "pedido_enviado": """✅ Your ride request has been sent to all available drivers. Please wait for a driver to accept...

*Ride #{corrida_id}*

To cancel this ride, reply with: *cancelar {corrida_id}*""",
        "sem_motoristas": "❌ Sorry, no drivers are registered in the system. Please contact support.",
        "corrida_aceita": """✅ Great news! A driver has accepted your ride request.

*Ride #{corrida_id}*
*Driver:* {motorista}
*Phone:* {telefone}
*Reputation:* {reputacao}

The driver will contact you shortly. Have a safe trip! 🚖

To cancel this ride, reply with: *cancelar {corrida_id}*""",
        "corrida_expirada": """⏰ Sorry, no driver accepted your ride request within {tempo_espera} minutes.

Would you like to try again using the same information?

""" + _OPCOES_TENTAR.format(sim="Yes, try again", nao="No, cancel request"),
        "corrida_expirada_novamente": """⏰ Still no driver available after {tempo_espera} minutes.

Would you like to keep trying?

""" + _OPCOES_TENTAR.format(sim="Yes, try again", nao="No, cancel request"),
        "novo_tempo_espera": "How many minutes are you willing to wait this time? (Minimum: 5 minutes)",
        "nova_tentativa": "✅ Trying again! Your ride request has been sent to all available drivers. Waiting {tempo_espera} minutes...",
        "tentativa_cancelada": '❌ Ride request cancelled. Send "taxi" or "mototaxi" to start a new request.',
        "tentativa_invalida": "❌ Please reply with 1 to try again or 2 to cancel.",
        "cancelada_pelo_passageiro": "✅ Ride #{corrida_id} has been cancelled successfully.",
        "motorista_notificado": "The driver has been notified of the cancellation.",
        "motorista_cancelou": """⚠️ The driver cancelled ride #{corrida_id}.

Would you like to try again with another driver?

""" + _OPCOES_TENTAR.format(sim="Yes, try again", nao="No, cancel request"),
        "reenviada": """✅ Your ride request has been sent to all available drivers again. Please wait...

*Ride #{corrida_id}*

To cancel this ride, reply with: *cancelar {corrida_id}*""",
        "feedback_passageiro": """🌟 *How was your ride experience?*

We hope you had a great trip! We'd love to hear about your experience with ride #{corrida_id}.

Your feedback helps us improve our service for everyone.

📝 Please share your feedback here:
{link_formulario}

Thank you for using our taxi service! 🚖""",
        "pedido_avaliacao_passageiro": """⭐ *Rate Your Driver*

How would you rate {nome} for ride #{corrida_id}?

To rate, type "rate" followed by a number from 1 to 5:
⭐ rate 1 - Very poor
⭐⭐ rate 2 - Poor
⭐⭐⭐ rate 3 - Average
⭐⭐⭐⭐ rate 4 - Good
⭐⭐⭐⭐⭐ rate 5 - Excellent

Example: rate 5

Your rating helps build trust in our community! You have 24 hours to rate.""",
        "nome_motorista_padrao": "your driver",
        "avaliacao_registrada": "✅ Thank you! Your rating of {nota} ⭐ has been recorded.",
        "avaliacao_invalida": '❌ Please type "rate" followed by a number from 1 to 5 (example: rate 4).',
        "keepalive": "⏳ We are still looking for a driver for your ride. Please wait...",
        "sem_reputacao": "no reputation yet",
        "tag_teste": " 🧪 [TEST MODE]",
        "corrida_nao_encontrada": "❌ Ride not found.",
        "nao_pode_cancelar": "❌ You cannot cancel this ride.",
        "ja_cancelada": "❌ This ride is already cancelled.",
    },
    "pt": {
        "aviso_timeout": "⚠️ Aviso: Você tem 2 minutos e 30 segundos restantes para responder, ou sua sessão expirará e você precisará começar de novo.",
        "sessao_expirada": '⏰ Sua sessão expirou por inatividade. Por favor envie "taxi" ou "mototaxi" novamente para iniciar uma nova solicitação de corrida.',
        "tipo_veiculo": "🚖 Que tipo de corrida você precisa?\n\n1️⃣ - Mototaxi 🏍️\n2️⃣ - Táxi 🚗",
        "tipo_veiculo_invalido": "❌ Por favor selecione 1 para Mototaxi ou 2 para Táxi",
        "saudacao": "🚖 Vou te ajudar a encontrar uma corrida - por favor responda algumas perguntas.",
        "nome": "Qual é o seu nome?",
        "telefone": "📱 Qual é o seu número de telefone? (inclua código do país, ex: +55 84 9 1234-5678)",
        "telefone_invalido": "❌ Formato de telefone inválido. Por favor inclua o código do país começando com + (ex: +55 84 9 1234-5678)",
        "local_texto": "📍 Onde você está? (descreva sua localização em texto)",
        "local_pin": "📍 Por favor envie sua localização usando o recurso de compartilhamento de localização do WhatsApp",
        "local_pin_invalido": "❌ Por favor compartilhe sua localização usando o recurso de localização do WhatsApp (ícone anexo 📎 Localização)",
        "destino": "🎯 Para onde você quer ir? (descreva seu destino)",
        "identificacao": "👕 O que você está vestindo ou como o motorista pode te identificar? (ex: camiseta azul, boné vermelho)",
        "tempo_espera": "⏰ Quantos minutos você está disposto a esperar pela sua corrida? (Mínimo: 5 minutos)",
        "tempo_espera_invalido": "❌ Por favor insira um número válido de pelo menos 5 minutos.",
        "confirmacao": """📋 *Por favor revise suas informações:*

*Tipo de Veículo:* {veiculo}
*Nome:* {nome}
*Telefone:* {telefone}
*Localização:* {local}
*Destino:* {destino}
*Identificação:* {identificacao}
*Tempo de Espera:* {tempo_espera} minutos

As informações estão corretas?

Responda:
*CONFIRMAR* - para enviar sua solicitação
*CANCELAR* - para cancelar e começar de novo""",
        "confirmacao_invalida": "❌ Por favor responda com *CONFIRMAR* para prosseguir ou *CANCELAR* para cancelar.",
        "cancelada": '❌ Solicitação de corrida cancelada. Envie "taxi" ou "mototaxi" para iniciar uma nova solicitação.',
        "pedido_enviado": """✅ Sua solicitação de corrida foi enviada para todos os motoristas disponíveis. Por favor aguarde um motorista aceitar...

*Corrida #{corrida_id}*

Para cancelar esta corrida, responda com: *cancelar {corrida_id}*""",
        "sem_motoristas": "❌ Desculpe, nenhum motorista está registrado no sistema. Por favor contate o suporte.",
        "corrida_aceita": """✅ Ótimas notícias! Um motorista aceitou sua solicitação de corrida.

*Corrida #{corrida_id}*
*Motorista:* {motorista}
*Telefone:* {telefone}
*Reputação:* {reputacao}

O motorista entrará em contato em breve. Tenha uma viagem segura! 🚖

Para cancelar esta corrida, responda com: *cancelar {corrida_id}*""",
        "corrida_expirada": """⏰ Desculpe, nenhum motorista aceitou sua solicitação de corrida dentro de {tempo_espera} minutos.

Gostaria de insistir na corrida usando as mesmas informações?

""" + _OPCOES_TENTAR.format(sim="Sim, tentar novamente", nao="Não, cancelar solicitação"),
        "corrida_expirada_novamente": """⏰ Ainda nenhum motorista disponível após {tempo_espera} minutos.

Gostaria de continuar tentando?

""" + _OPCOES_TENTAR.format(sim="Sim, tentar novamente", nao="Não, cancelar solicitação"),
        "novo_tempo_espera": "Quantos minutos você está disposto a esperar desta vez? (Mínimo: 5 minutos)",
        "nova_tentativa": "✅ Tentando novamente! Sua solicitação de corrida foi enviada para todos os motoristas disponíveis. Aguardando {tempo_espera} minutos...",
        "tentativa_cancelada": '❌ Solicitação de corrida cancelada. Envie "taxi" ou "mototaxi" para iniciar uma nova solicitação.',
        "tentativa_invalida": "❌ Por favor responda com 1 para tentar novamente ou 2 para cancelar.",
        "cancelada_pelo_passageiro": "✅ Corrida #{corrida_id} foi cancelada com sucesso.",
        "motorista_notificado": "O motorista foi notificado do cancelamento.",
        "motorista_cancelou": """⚠️ O motorista cancelou a corrida #{corrida_id}.

Gostaria de tentar novamente com outro motorista?

""" + _OPCOES_TENTAR.format(sim="Sim, tentar novamente", nao="Não, cancelar solicitação"),
        "reenviada": """✅ Sua solicitação de corrida foi enviada para todos os motoristas disponíveis novamente. Por favor aguarde...

*Corrida #{corrida_id}*

Para cancelar esta corrida, responda com: *cancelar {corrida_id}*""",
        "feedback_passageiro": """🌟 *Como foi sua experiência na corrida?*

Esperamos que você tenha tido uma ótima viagem! Gostaríamos de saber sobre sua experiência na corrida #{corrida_id}.

Seu feedback nos ajuda a melhorar nosso serviço para todos.

📝 Por favor, compartilhe seu feedback aqui:
{link_formulario}

Obrigado por usar nosso serviço de táxi! 🚖""",
        "feedback_motorista": """🌟 *Como foi sua experiência na corrida?*

Obrigado por completar a corrida #{corrida_id}! Gostaríamos de saber sobre sua experiência.

Seu feedback nos ajuda a melhorar nosso serviço para todos.

📝 Por favor, compartilhe seu feedback aqui:
{link_formulario}

Obrigado por fazer parte da nossa comunidade de motoristas! 🚖""",
        "pedido_avaliacao_passageiro": """⭐ *Avalie Seu Motorista*

Como você avaliaria {nome} na corrida #{corrida_id}?

Para avaliar, digite "avaliar" seguido de um número de 1 a 5:
⭐ avaliar 1 - Muito ruim
⭐⭐ avaliar 2 - Ruim
⭐⭐⭐ avaliar 3 - Regular
⭐⭐⭐⭐ avaliar 4 - Bom
⭐⭐⭐⭐⭐ avaliar 5 - Excelente

Exemplo: avaliar 5

Sua avaliação ajuda a construir confiança na nossa comunidade! Você tem 24 horas para avaliar.""",
        "pedido_avaliacao_motorista": """⭐ *Avalie Seu Passageiro*

Como você avaliaria {nome} na corrida #{corrida_id}?

Para avaliar, digite "avaliar" seguido de um número de 1 a 5:
⭐ avaliar 1 - Muito ruim
⭐⭐ avaliar 2 - Ruim
⭐⭐⭐ avaliar 3 - Regular
⭐⭐⭐⭐ avaliar 4 - Bom
⭐⭐⭐⭐⭐ avaliar 5 - Excelente

Exemplo: avaliar 5

Sua avaliação ajuda a construir confiança na nossa comunidade! Você tem 24 horas para avaliar.""",
        "nome_motorista_padrao": "seu motorista",
        "nome_passageiro_padrao": "seu passageiro",
        "avaliacao_registrada": "✅ Obrigado! Sua avaliação de {nota} ⭐ foi registrada.",
        "avaliacao_invalida": '❌ Por favor digite "avaliar" seguido de um número de 1 a 5 (exemplo: avaliar 4).',
        "keepalive": "⏳ Ainda estamos procurando um motorista para sua corrida. Por favor, aguarde...",
        "sem_reputacao": "ainda sem reputação",
        "tag_teste": " 🧪 [MODO TESTE]",
        "corrida_nao_encontrada": "❌ Corrida não encontrada.",
        "nao_pode_cancelar": "❌ Você não pode cancelar esta corrida.",
        "ja_cancelada": "❌ Esta corrida já foi cancelada.",
    },
}

# Mensagens enviadas antes de o passageiro escolher o idioma
BOAS_VINDAS = """🚖 Welcome!{tag} Please select your language / Bem-vindo!{tag} Por favor selecione seu idioma:

1️⃣ - English
2️⃣ - Português"""

BOAS_VINDAS_RETORNO = """🚖 Welcome back, {nome}!{tag} / Bem-vindo de volta, {nome}!{tag}

Please select your language / Por favor selecione seu idioma:

1️⃣ - English
2️⃣ - Português"""

IDIOMA_INVALIDO = "Please select 1 for English or 2 for Português / Por favor selecione 1 para English ou 2 para Português"

# Respostas bilingues para quem ainda nao tem idioma conhecido
CORRIDA_NAO_ENCONTRADA_BILINGUE = "❌ Ride not found / Corrida não encontrada."
NAO_PODE_CANCELAR_BILINGUE = "❌ You cannot cancel this ride / Você não pode cancelar esta corrida."


# Mensagens para motoristas (sempre em portugues)
MOTORISTA = {
    "nova_corrida": """{icone} *NOVA CORRIDA AUTOMÁTICA - {rotulo}{tag}*{banner}

*Passageiro:* {nome}
*Telefone:* {telefone}
*Reputação:* {reputacao}
*Local (texto):* {local}
*Destino:* {destino}
*Identificação:* {identificacao}
*Tempo de espera:* {tempo_espera} minutos

*Corrida #{corrida_id}*

*Para aceitar, escreva: aceitar {corrida_id}*

🤖 Esta é uma mensagem automática do sistema.""",
    "banner_reenvio": "\n*[RE-ENVIADA - Motorista anterior cancelou]*",
    "aceite_confirmado": """✅ {prefixo}Corrida #{corrida_id} aceita com sucesso! O passageiro será notificado.

*Detalhes do Passageiro:*
Nome: {nome}
Telefone: {telefone}
Reputação: {reputacao}
Local: {local}
Destino: {destino}
Identificação: {identificacao}
Tempo de espera: {tempo_espera} minutos

📞 *Entre em contato com o passageiro para mais detalhes.*

Para cancelar esta corrida, responda: *cancelar {corrida_id}*""",
    "prefixo_cpf": "CPF validado! ",
    "corrida_nao_encontrada": "❌ Nenhuma corrida encontrada com este número.",
    "corrida_expirada": "❌ Esta corrida expirou porque nenhum motorista aceitou dentro do tempo de espera.",
    "corrida_ja_aceita": "❌ Esta corrida já foi aceita por outro motorista.",
    "corrida_indisponivel": "❌ Esta corrida não está mais disponível.",
    "aceitar_sem_numero": "⚠️ Por favor, inclua o número da corrida que deseja aceitar.\n\nExemplo: *aceitar 27*",
    "passageiro_cancelou": """❌ *CORRIDA CANCELADA PELO PASSAGEIRO*

*Corrida #{corrida_id}*
O passageiro {nome} cancelou a corrida.

🤖 Esta é uma mensagem automática do sistema.""",
    "nao_atribuido": "❌ Você não está atribuído a esta corrida.",
    "ja_cancelada": "❌ Esta corrida já foi cancelada.",
    "cancelamento_confirmado": "✅ Corrida #{corrida_id} foi cancelada. O passageiro será consultado se deseja reenviar.",
    "cpf_pedido": """🔐 *Confirmação de Identidade*

Para aceitar a corrida #{corrida_id}, por favor, confirme informando seu CPF de cadastro do motorista.

Digite seu CPF (com ou sem formatação):
Exemplo: 123.456.789-00 ou 12345678900""",
    "cpf_formato_invalido": "❌ Formato de CPF inválido. Por favor, digite um CPF válido com 11 dígitos.\n\nExemplo: 123.456.789-00 ou 12345678900",
    "cpf_invalido": """❌ CPF não encontrado ou não corresponde a um motorista cadastrado.

Você tem {restantes} tentativa(s) restante(s). Por favor, tente novamente.""",
    "cpf_max_tentativas": '❌ Número máximo de tentativas de CPF excedido. Por favor, tente aceitar a corrida novamente.\n\nVocê pode se registrar como motorista respondendo "sou motorista" aqui.',
    "cpf_sessao_expirada": "⏰ A confirmação de CPF expirou. Envie *aceitar <número>* novamente para aceitar a corrida.",
}


def t(idioma: Optional[str], chave: str, **kwargs) -> str:
    """
    Texto traduzido para o passageiro.

    Idioma desconhecido cai para ingles.
    """
    textos = TRADUCOES.get(idioma or "", TRADUCOES["en"])
    template = textos.get(chave) or TRADUCOES[IDIOMA_PORTUGUES][chave]
    return template.format(**kwargs) if kwargs else template


def m(chave: str, **kwargs) -> str:
    """Texto para motoristas."""
    template = MOTORISTA[chave]
    return template.format(**kwargs) if kwargs else template


def rotulo_veiculo(tipo_veiculo: Optional[str], idioma: Optional[str] = IDIOMA_PORTUGUES) -> str:
    if tipo_veiculo == TIPO_MOTOTAXI:
        return "Mototaxi 🏍️"
    return "Taxi 🚗" if idioma == "en" else "Táxi 🚗"


def formatar_telefone(numero: str) -> str:
    """
    Formata numero com DDI para exibicao.

    "558492150464" -> "+55 84 92150464"; outros paises so ganham o "+".
    """
    limpo = numero.lstrip("+")
    if limpo.startswith("55"):
        return f"+{limpo[:2]} {limpo[2:4]} {limpo[4:]}"
    return f"+{limpo}"
