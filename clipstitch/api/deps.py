from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from clipstitch.render.fonts import FontRegistry, get_font_registry
from clipstitch.render.pipeline import RenderPipeline
from clipstitch.services.template_extractor import TemplateExtractor


@lru_cache
def get_render_pipeline() -> RenderPipeline:
    """Shared pipeline instance. Jobs keep all their state in their own RenderJob."""
    return RenderPipeline()


@lru_cache
def get_template_extractor() -> TemplateExtractor:
    return TemplateExtractor()


RenderPipelineDep = Annotated[RenderPipeline, Depends(get_render_pipeline)]
TemplateExtractorDep = Annotated[TemplateExtractor, Depends(get_template_extractor)]
FontRegistryDep = Annotated[FontRegistry, Depends(get_font_registry)]
