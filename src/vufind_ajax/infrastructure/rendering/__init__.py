from .renderer import TemplateRenderer

__all__ = ["TemplateRenderer"]
