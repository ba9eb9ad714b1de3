import base64
import io
import logging
from typing import Any, Dict, NamedTuple, Optional

import requests
from google.genai import types
from PIL import Image

import config
from card_schema import Archetype
from gemini_client import get_client, transient_retry

logger = logging.getLogger(__name__)

MAX_REFERENCE_SIZE = 1024
MAX_REFERENCE_BYTES = 10 * 1024 * 1024
DOWNLOAD_CHUNK_SIZE = 64 * 1024

USER_AGENT = "LegendRoastCards/1.0 (card image generator)"

ELEMENT_SETTINGS: Dict[str, Dict[str, str]] = {
    "data": {
        "bg": "glowing crystal cave with floating holographic charts and data streams",
        "setting": "surrounded by floating glowing orbs of data, analyzing patterns in the air",
        "colors": "electric blue, cyan glow, and deep purple shadows",
        "props": "floating crystals showing metrics, mystical dashboard runes, glowing spreadsheet tablets",
    },
    "chaos": {
        "bg": "swirling vortex dimension with multiple portals and chaotic energy",
        "setting": "surfing on a wave of notifications while juggling multiple glowing objects",
        "colors": "hot pink, electric orange, warning red, and purple lightning",
        "props": "floating notification bubbles, swirling task tornados, coffee cup meteors",
    },
    "strategy": {
        "bg": "ancient temple library with floating scrolls and mystical strategy boards",
        "setting": "contemplating a glowing 3D chess board hovering in midair",
        "colors": "royal purple, gold accents, and mystical green glow",
        "props": "floating framework scrolls, glowing 2x2 matrices, ancient strategy tomes",
    },
    "shipping": {
        "bg": "rocket launch platform with countdown displays and epic deployment energy",
        "setting": "dramatically pressing a giant glowing launch button as rockets ignite",
        "colors": "launch orange, victory green, and midnight blue",
        "props": "countdown holographics, feature flag banners, deployment aurora effects",
    },
    "politics": {
        "bg": "grand council hall with multiple faction banners and political intrigue",
        "setting": "standing confidently between two opposing groups, playing both sides",
        "colors": "royal gold, power red, and alliance purple",
        "props": "floating alliance symbols, relationship web threads, influence auras",
    },
    "vision": {
        "bg": "cosmic dreamscape with nebulas, floating islands, and reality-bending horizons",
        "setting": "floating in space surrounded by visions of possible futures",
        "colors": "dream pink, cosmic purple, and infinite blue gradient",
        "props": "floating future visions, hockey stick constellations, reality distortion waves",
    },
}

NO_TEXT_RULES = """CRITICAL - NO TEXT IN IMAGE:
- NEVER generate ANY text, words, letters, numbers, labels, signs, logos or watermarks
- AI-generated text always looks wrong - avoid it completely"""


class ReferencePhoto(NamedTuple):
    data: bytes
    mime_type: str


def _read_capped(response) -> Optional[bytes]:
    """Body of a streamed response, or None once it passes MAX_REFERENCE_BYTES."""
    declared = response.headers.get('content-length')
    if declared and declared.isdigit() and int(declared) > MAX_REFERENCE_BYTES:
        return None

    chunks = []
    size = 0
    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
        size += len(chunk)
        if size > MAX_REFERENCE_BYTES:
            return None
        chunks.append(chunk)
    return b''.join(chunks)


def fetch_reference_photo(url: str) -> Optional[ReferencePhoto]:
    """
    Download a reference photo for likeness-preserving generation.

    Photos larger than MAX_REFERENCE_SIZE on either side are downscaled before
    they are embedded in the model request. Downloads over MAX_REFERENCE_BYTES
    are abandoned.

    Returns:
        The photo bytes and MIME type, or None if the download or decode failed
    """
    try:
        response = requests.get(
            url,
            headers={'User-Agent': USER_AGENT},
            timeout=config.IMAGE_DOWNLOAD_TIMEOUT,
            stream=True
        )
        try:
            response.raise_for_status()
            data = _read_capped(response)
            mime_type = (response.headers.get('content-type') or 'image/jpeg').split(';')[0].strip()
        finally:
            response.close()
    except requests.RequestException as e:
        logger.warning("[IMAGE GENERATION] Failed to fetch reference photo %s: %s", url, e)
        return None

    if data is None:
        logger.warning("[IMAGE GENERATION] Reference photo %s exceeds %d bytes, skipping", url, MAX_REFERENCE_BYTES)
        return None

    try:
        with Image.open(io.BytesIO(data)) as img:
            if max(img.size) <= MAX_REFERENCE_SIZE:
                img.verify()
                return ReferencePhoto(data, mime_type)

            img.thumbnail((MAX_REFERENCE_SIZE, MAX_REFERENCE_SIZE))
            buffer = io.BytesIO()
            img.convert('RGB').save(buffer, format='JPEG', quality=90)
            logger.info("[IMAGE GENERATION] Downscaled reference photo to %s", img.size)
            return ReferencePhoto(buffer.getvalue(), 'image/jpeg')
    except Exception as e:
        logger.warning("[IMAGE GENERATION] Reference photo is not a readable image: %s", e)
        return None


def build_personalized_prompt(name: str, archetype: Archetype) -> str:
    settings = ELEMENT_SETTINGS.get(archetype.element, ELEMENT_SETTINGS["vision"])
    return f"""Create a FUNNY illustrated trading card portrait of THIS EXACT PERSON as "{archetype.name}".

{NO_TEXT_RULES}

CRITICAL - PRESERVE THE PERSON'S LIKENESS:
- The output MUST look like this specific person: {name}
- Copy their face: eyes, nose, mouth, face shape, skin tone, hair color, hairstyle
- If they have glasses, facial hair or distinctive features, KEEP THEM

STYLE:
- Collectible trading card illustration - vibrant, colorful, fun
- Hand-painted watercolor look with magical energy effects

CHARACTER DESCRIPTION:
{archetype.description}

SCENE:
- The person is {settings['setting']}
- Background: {settings['bg']}
- Props: {settings['props']}
- Primary colors: {settings['colors']}

COMPOSITION:
- Upper body portrait, face prominently featured and LARGE
- LANDSCAPE 16:9 aspect ratio

DO NOT:
- Generate any text, words, or writing
- Make the person unrecognizable
- Create photorealistic renders"""


def build_illustration_prompt(name: str, archetype: Archetype) -> str:
    settings = ELEMENT_SETTINGS.get(archetype.element, ELEMENT_SETTINGS["vision"])
    return f"""Create a FUNNY illustrated trading card style portrait for a legendary figure named "{name}" with the archetype "{archetype.name}".

{NO_TEXT_RULES}

STYLE:
- Trading card game illustration, vibrant hand-painted watercolor look
- Magical energy effects and dynamic lighting
- Should look LEGENDARY and a little ridiculous

CHARACTER:
- {archetype.description}
- {settings['setting']}
- Background: {settings['bg']}
- Props: {settings['props']}
- Primary colors: {settings['colors']}

COMPOSITION:
- Upper body portrait
- LANDSCAPE 16:9 aspect ratio

DO NOT:
- Generate any text or writing
- Make it photorealistic
- Make it boring or generic"""


def extract_image_data_uri(response: Any) -> Optional[str]:
    """
    Return the first inline image part of a model response as a data URI.

    Image bytes are checked with Pillow; unreadable parts are skipped.
    """
    candidates = getattr(response, 'candidates', None)
    if not candidates:
        return None

    content = getattr(candidates[0], 'content', None)
    parts = getattr(content, 'parts', None) or []

    for part in parts:
        inline_data = getattr(part, 'inline_data', None)
        if not inline_data or not inline_data.data:
            continue

        mime_type = inline_data.mime_type or "image/png"
        image_data = inline_data.data
        if isinstance(image_data, str):
            # Some transports hand back base64 text instead of raw bytes
            image_data = base64.b64decode(image_data)

        try:
            with Image.open(io.BytesIO(image_data)) as img:
                img.verify()
        except Exception as validation_error:
            logger.warning("[IMAGE GENERATION] Skipping invalid image part: %s", validation_error)
            continue

        logger.info("[IMAGE GENERATION] Received %d bytes (%s)", len(image_data), mime_type)
        return f"data:{mime_type};base64,{base64.b64encode(image_data).decode('ascii')}"

    return None


@transient_retry
def _call_image_model(client, contents):
    return client.models.generate_content(
        model=config.GEMINI_IMAGE_MODEL,
        contents=contents,
        config=types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"]
        )
    )


def generate_personalized_image(client, name: str, archetype: Archetype, photo: ReferencePhoto) -> Optional[str]:
    """Likeness-preserving portrait built from a reference photo."""
    logger.info("[IMAGE GENERATION] Generating personalized image for %r", name)
    contents = [
        types.Part(
            inline_data=types.Blob(
                mime_type=photo.mime_type,
                data=photo.data
            )
        ),
        build_personalized_prompt(name, archetype),
    ]
    return extract_image_data_uri(_call_image_model(client, contents))


def generate_illustration(client, name: str, archetype: Archetype) -> Optional[str]:
    """Stylized illustration with no reference photo."""
    logger.info("[IMAGE GENERATION] Generating illustration for %r", name)
    return extract_image_data_uri(_call_image_model(client, build_illustration_prompt(name, archetype)))


def generate_card_image(
    name: str,
    archetype: Archetype,
    photo_url: Optional[str] = None,
    client=None
) -> Optional[str]:
    """
    Produce the card artwork, preferring a likeness of the subject.

    Tries a personalized portrait when a reference photo is available, then a
    plain illustration. Every failure is logged and absorbed.

    Returns:
        A data URI, or None when no image could be produced
    """
    try:
        client = client or get_client()
    except Exception as e:
        logger.error("[IMAGE GENERATION] No image client available: %s", e)
        return None

    if photo_url:
        photo = fetch_reference_photo(photo_url)
        if photo is not None:
            try:
                image = generate_personalized_image(client, name, archetype, photo)
                if image:
                    return image
                logger.info("[IMAGE GENERATION] Personalized response held no image, falling back")
            except Exception as e:
                logger.warning("[IMAGE GENERATION] Personalized generation failed: %s", e)

    try:
        image = generate_illustration(client, name, archetype)
    except Exception as e:
        logger.error("[IMAGE GENERATION] Illustration failed: %s", e)
        return None

    if image is None:
        logger.info("[IMAGE GENERATION] No image generated for %r", name)
    return image
