"""
Pydantic models for gateway requests
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any


class ImageGenerationRequest(BaseModel):
    """Request body for text-to-image generation"""
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., description="The generation prompt")
    aspect_ratio: str = Field("1:1", description="Output aspect ratio")
    seed: Optional[int] = Field(None, description="Random seed for reproducibility")
    negative_prompt: Optional[str] = Field(None, alias="negativePrompt", description="Negative prompt")
    person_generation: str = Field("allow_adult", alias="personGeneration", description="Person generation policy")


class ImageToImageRequest(BaseModel):
    """Request body for image-to-image transformation"""
    prompt: str = Field(..., description="The transformation prompt")
    image: str = Field(..., description="Source image URL or data URL")
    strength: Optional[float] = Field(None, ge=0, description="Transformation strength")
    guidance_scale: Optional[float] = Field(None, ge=0, description="Guidance scale")
    num_inference_steps: Optional[int] = Field(None, ge=1, description="Number of inference steps")
    seed: Optional[int] = Field(None, description="Random seed")
    negative_prompt: Optional[str] = Field(None, description="Negative prompt")


class ThreeDGenerationRequest(BaseModel):
    """Request body for 3D mesh generation"""
    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = Field(None, description="Text prompt")
    image_url: Optional[str] = Field(None, alias="imageUrl", description="Source image URL")


class ColoringBookRequest(BaseModel):
    """Request body for coloring-book conversion"""
    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(..., alias="imageUrl", description="Source image URL")
    prompt_strength: float = Field(0.8, description="How far to move away from the source")
    guidance_scale: float = Field(7.5, description="Guidance scale")
    num_inference_steps: int = Field(30, description="Number of inference steps")
    negative_prompt: Optional[str] = Field(None, description="Negative prompt")
    seed: Optional[int] = Field(None, description="Random seed")


class PromptGenerationRequest(BaseModel):
    """Request body for LLM prompt enhancement"""
    template: str = Field(..., description="Template with {{key}} placeholders")
    variables: Dict[str, Any] = Field(default_factory=dict, description="Placeholder values")
