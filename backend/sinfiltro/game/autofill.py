from __future__ import annotations

import logging
import random
import re

import requests

from ..config import Config

log = logging.getLogger(__name__)

HF_API_URL = "https://api-inference.huggingface.co/models/{model}"

FALLBACK_RESPONSES = [
    "Mi cerebro ha explotado... literalmente",
    "Error 404: Creatividad no encontrada",
    "La IA se ha ido a tomar un café",
    "Ups, el hámster que genera mis ideas se durmió",
    "¿Y si simplemente fingimos que esto no pasó?",
    "Mi respuesta era tan buena que el servidor la rechazó",
    "La inspiración está de vacaciones",
    "Un unicornio me robó la respuesta",
    "Técnicamente, esto es arte moderno",
    "Mi abuela responde mejor que yo",
    "Se me olvidó pensar, perdón",
    "El WiFi se comió mi respuesta",
    "Esto es muy profundo para mí",
    "Mi perro escribiría algo mejor",
]

MAX_RESPONSE_LENGTH = 80

SYSTEM_PROMPT = """Eres un genio del humor absurdo participando en un juego de ingenio. Tu misión: responder de forma SUPER graciosa, inesperada y breve (máximo 8 palabras) en ESPAÑOL.

Pregunta: "{prompt}"

REGLAS:
- Sé absurdo, surrealista o sarcástico
- Respuestas cortas y contundentes
- Nada de explicaciones, solo la respuesta

SOLO escribe la respuesta, nada más."""


def generated_text(payload) -> str:
    if isinstance(payload, list) and payload and isinstance(payload[0], dict):
        return payload[0].get("generated_text") or ""
    if isinstance(payload, dict):
        return payload.get("generated_text") or ""
    return ""


def clean_response(text: str) -> str:
    text = text.split("[/INST]")[-1].strip()
    text = re.sub(r"[\"'«»]", "", text)
    text = re.sub(r"^\s*-\s*", "", text)
    text = text.split("\n", 1)[0].strip()
    if len(text) > MAX_RESPONSE_LENGTH:
        text = text[: MAX_RESPONSE_LENGTH - 3] + "..."
    return text


class AnswerGenerator:
    """Best-effort filler answers for prompts a player left empty.

    ``generate`` never raises: without a token, on any error, or on an
    empty/too-short result it returns one of the canned fallback lines.
    """

    def __init__(
        self,
        token: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.token = Config.HUGGINGFACE_TOKEN if token is None else token
        self.model = model or Config.AUTOFILL_MODEL
        self.timeout = Config.AUTOFILL_TIMEOUT_SEC if timeout is None else timeout
        self.session = session or requests.Session()
        self.rng = rng or random

    def fallback(self) -> str:
        return self.rng.choice(FALLBACK_RESPONSES)

    def generate(self, prompt_text: str) -> str:
        if not self.token or not (prompt_text or "").strip():
            return self.fallback()

        try:
            response = self.session.post(
                HF_API_URL.format(model=self.model),
                headers={"Authorization": f"Bearer {self.token}"},
                json={
                    "inputs": f"<s>[INST] {SYSTEM_PROMPT.format(prompt=prompt_text)} [/INST]",
                    "parameters": {
                        "max_new_tokens": 25,
                        "temperature": 1.0,
                        "top_p": 0.92,
                        "repetition_penalty": 1.3,
                    },
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            log.warning("answer generation failed, using filler: %s", e)
            return self.fallback()

        text = clean_response(generated_text(payload))
        if len(text) < 2:
            return self.fallback()
        return text


TOPIC_PREFIXES = ("sobre ", "acerca de ", "frases de ", "chistes de ", "preguntas de ", "temas de ")
TOPIC_PROMPT_COUNT = 5
MAX_TOPIC_LENGTH = 60

TOPIC_SYSTEM_PROMPT = """Eres un escritor de comedia para un juego de ingenio tipo Quiplash.

TEMA SOLICITADO: "{topic}"

Genera {count} preguntas de humor sobre este tema, una por línea, en ESPAÑOL.

FORMATOS:
- Preguntas abiertas: "La verdadera razón por la que murieron los dinosaurios"
- Completar con ____: "Nunca te subirías a una montaña rusa llamada ____"
- Inventa un nombre: "Un nombre terrible para un crucero"
- El peor/mejor: "Lo mejor de ir a la cárcel"
- Algo que...: "Algo que no deberías llevar a una entrevista de trabajo"

REGLAS:
1. Usa ____ para los espacios en blanco
2. Humor absurdo y provocador
3. Sé ESPECÍFICO sobre {topic}, nada genérico
4. Máximo 20 palabras por pregunta

AHORA GENERA {count} PREGUNTAS SOBRE "{topic}":
"""

FALLBACK_TOPIC_TEMPLATES = [
    "Lo que no te cuentan sobre {topic}",
    "El secreto mejor guardado de {topic}",
    "La verdad incómoda sobre {topic}",
    "La versión de {topic} que fue prohibida",
    "La versión premium de {topic} que cuesta 10.000€",
    "{topic} edición limitada incluye: ____",
    "El titular más absurdo sobre {topic}",
    "Última hora: {topic} hace algo impensable",
    "El merchandising de {topic} que nadie pidió",
    "La colaboración entre {topic} y ____",
    "La teoría conspirativa sobre {topic}",
    "El meme de {topic} que se volvió viral",
    "{topic} vs ____: ¿quién ganaría?",
    "El documental prohibido sobre {topic}",
    "Científicos descubren algo terrible sobre {topic}",
    "La forma más estúpida de usar {topic}",
    "Lo que pasa detrás de cámaras en {topic}",
    "La parte de {topic} que no sale en Instagram",
]


def clean_topic(topic: str) -> str:
    """Strip lead-ins like "sobre" or "frases de" down to the subject."""
    original = (topic or "").strip()
    cleaned = original
    changed = True
    while changed:
        changed = False
        for prefix in TOPIC_PREFIXES:
            if cleaned.lower().startswith(prefix):
                cleaned = cleaned[len(prefix) :].strip()
                changed = True
    return cleaned or original


def parse_prompt_lines(text: str, count: int = TOPIC_PROMPT_COUNT) -> list[str]:
    prompts = []
    for line in (text or "").split("\n"):
        line = line.strip()
        if len(line) <= 10 or "[INST]" in line or "tema:" in line.lower():
            continue
        line = re.sub(r"^\d+[.)\-]\s*", "", line)
        line = re.sub(r"^-\s*", "", line)
        line = line.strip('"').strip()
        if line:
            prompts.append(line)
    return prompts[:count]


class PromptGenerator(AnswerGenerator):
    """Themed prompts for a custom library; canned templates when the model is unavailable."""

    def fallback_prompts(self, topic: str, count: int = TOPIC_PROMPT_COUNT) -> list[str]:
        templates = self.rng.sample(FALLBACK_TOPIC_TEMPLATES, count)
        return [t.format(topic=topic) for t in templates]

    def generate_prompts(self, topic: str, count: int = TOPIC_PROMPT_COUNT) -> list[str]:
        topic = clean_topic(topic)
        if not topic:
            return []
        if not self.token:
            return self.fallback_prompts(topic, count)

        try:
            response = self.session.post(
                HF_API_URL.format(model=self.model),
                headers={"Authorization": f"Bearer {self.token}"},
                json={
                    "inputs": TOPIC_SYSTEM_PROMPT.format(topic=topic, count=count),
                    "parameters": {
                        "max_new_tokens": 500,
                        "temperature": 0.9,
                        "top_p": 0.95,
                        "repetition_penalty": 1.2,
                        "return_full_text": False,
                    },
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            log.warning("prompt generation for %r failed, using templates: %s", topic, e)
            return self.fallback_prompts(topic, count)

        generated = generated_text(payload)
        prompts = parse_prompt_lines(generated, count) if len(generated) > 30 else []
        if not prompts:
            log.info("model gave no usable prompts for %r, using templates", topic)
            return self.fallback_prompts(topic, count)
        return prompts
