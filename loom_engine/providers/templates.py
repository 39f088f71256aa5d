"""System instructions keyed by prompt template."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PromptTemplate:
    template_id: str
    name: str
    icon: str
    summary: str
    instruction: str


DEFAULT_TEMPLATE_ID = "logo"

IMAGE_SYSTEM_PROMPT = """You are a logo-generation assistant using Gemini 2.5 Flash Image.
Always generate or edit a single logo at exactly 1024x1024 pixels.
Prioritize simple, high-contrast, scalable vector-like aesthetics with clean silhouettes and minimal shapes.
Maintain the existing composition unless the user explicitly requests a redesign.
If the user asks for an edit, treat the previous image as the base and apply the change.
Never output non-1024x1024 images."""

VIDEO_SYSTEM_PROMPT = """You are a video-generation assistant using Veo 3.
Generate high-quality videos with synchronized audio based on the user's description.
Create cinematic content with realistic physics and smooth motion.
Keep videos engaging and professionally produced.
If provided with an image, use it as the starting frame for the video generation."""

_EDIT_CLAUSE = "If the user asks for an edit, treat the previous image as the base and apply the change."

PROMPT_TEMPLATES: dict[str, PromptTemplate] = {
    "logo": PromptTemplate(
        template_id="logo",
        name="Logo Design",
        icon="🎨",
        summary="Clean, scalable vector designs",
        instruction=IMAGE_SYSTEM_PROMPT,
    ),
    "general": PromptTemplate(
        template_id="general",
        name="General Image",
        icon="🖼️",
        summary="Photorealistic, detailed images",
        instruction=(
            "You are an image-generation assistant.\n"
            "Generate a single detailed, photorealistic image at exactly 1024x1024 pixels.\n"
            "Use natural lighting, accurate proportions and rich texture.\n"
            f"{_EDIT_CLAUSE}"
        ),
    ),
    "artistic": PromptTemplate(
        template_id="artistic",
        name="Artistic",
        icon="✨",
        summary="Creative, stylized artwork",
        instruction=(
            "You are an art-generation assistant.\n"
            "Generate a single creative, stylized artwork at exactly 1024x1024 pixels.\n"
            "Favor bold color, expressive brushwork and a strong visual concept.\n"
            f"{_EDIT_CLAUSE}"
        ),
    ),
    "product": PromptTemplate(
        template_id="product",
        name="Product Shot",
        icon="📦",
        summary="Professional product shots",
        instruction=(
            "You are a product-photography assistant.\n"
            "Generate a single professional product shot at exactly 1024x1024 pixels.\n"
            "Use studio lighting, a clean background and crisp focus on the product.\n"
            f"{_EDIT_CLAUSE}"
        ),
    ),
    "portrait": PromptTemplate(
        template_id="portrait",
        name="Portrait",
        icon="👤",
        summary="Character & facial focus",
        instruction=(
            "You are a portrait-generation assistant.\n"
            "Generate a single portrait at exactly 1024x1024 pixels.\n"
            "Keep the subject's face and expression as the focal point with flattering light.\n"
            f"{_EDIT_CLAUSE}"
        ),
    ),
    "landscape": PromptTemplate(
        template_id="landscape",
        name="Landscape",
        icon="🏞️",
        summary="Environmental & scenic views",
        instruction=(
            "You are a landscape-generation assistant.\n"
            "Generate a single scenic environment at exactly 1024x1024 pixels.\n"
            "Emphasize depth, atmosphere and a clear sense of place.\n"
            f"{_EDIT_CLAUSE}"
        ),
    ),
}


def resolve_template(template_id: str | None) -> PromptTemplate:
    key = str(template_id or "").strip().lower()
    return PROMPT_TEMPLATES.get(key) or PROMPT_TEMPLATES[DEFAULT_TEMPLATE_ID]


def system_instruction(template_id: str | None, *, video: bool = False) -> str:
    if video:
        return VIDEO_SYSTEM_PROMPT
    return resolve_template(template_id).instruction


def list_templates() -> list[PromptTemplate]:
    return list(PROMPT_TEMPLATES.values())
