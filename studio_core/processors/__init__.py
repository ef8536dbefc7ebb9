"""Processing modules"""

from .prompt_enhancer import PromptEnhancer, EnhancedPrompt, render_template, unresolved_placeholders

__all__ = ["PromptEnhancer", "EnhancedPrompt", "render_template", "unresolved_placeholders"]
