"""
Generation API endpoints, one per capability
"""

import base64
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response

from studio_core.exceptions import InvalidInputError
from studio_core.models import (
    ColoringBookRequest,
    ImageGenerationRequest,
    ImageToImageRequest,
    PromptGenerationRequest,
    ThreeDGenerationRequest,
)
from studio_core.services import GenerationGateway
from studio_backend.services import get_generation_gateway

router = APIRouter()


@router.post("/generate-image")
async def generate_image(
    request: ImageGenerationRequest,
    gateway: GenerationGateway = Depends(get_generation_gateway),
):
    """Generate an image from a text prompt"""
    return await gateway.generate_image(request)


@router.post("/image-to-image")
async def image_to_image(
    request: ImageToImageRequest,
    gateway: GenerationGateway = Depends(get_generation_gateway),
):
    """Transform an existing image guided by a prompt"""
    return await gateway.image_to_image(request)


@router.post("/generate-3d")
async def generate_3d(
    request: ThreeDGenerationRequest,
    gateway: GenerationGateway = Depends(get_generation_gateway),
):
    """Generate a 3D mesh from a prompt and/or an image"""
    return await gateway.generate_3d(request)


@router.post("/coloring-book")
async def coloring_book(
    request: ColoringBookRequest,
    gateway: GenerationGateway = Depends(get_generation_gateway),
):
    """Convert an image into a black and white coloring page"""
    return await gateway.coloring_book(request)


@router.post("/remove-background")
async def remove_background(
    image_file: Optional[UploadFile] = File(None),
    transparency_handling: Optional[str] = Form(None),
    response_format: str = Query("json", pattern="^(json|binary)$"),
    gateway: GenerationGateway = Depends(get_generation_gateway),
):
    """Remove the background of an uploaded image"""
    if image_file is None:
        raise InvalidInputError("No image file provided")

    content = await image_file.read()
    result = await gateway.remove_background(
        content,
        filename=image_file.filename,
        content_type=image_file.content_type,
        transparency_handling=transparency_handling,
    )

    if response_format == "binary":
        headers = {}
        if result.remaining_credits is not None:
            headers["x-remaining-credits"] = str(result.remaining_credits)
        if result.credits_consumed is not None:
            headers["x-credits-consumed"] = str(result.credits_consumed)
        return Response(content=result.content, media_type=result.content_type, headers=headers)

    encoded = base64.b64encode(result.content).decode("ascii")
    return {
        "success": True,
        "imageUrl": f"data:{result.content_type};base64,{encoded}",
        "remainingCredits": result.remaining_credits,
        "creditsConsumed": result.credits_consumed,
    }


@router.post("/generate-prompt")
async def generate_prompt(
    request: PromptGenerationRequest,
    gateway: GenerationGateway = Depends(get_generation_gateway),
):
    """Fill a prompt template and have the LLM expand it"""
    return await gateway.enhance_prompt(request.template, request.variables)


@router.get("/download-image")
async def download_image(
    url: Optional[str] = Query(None),
    filename: Optional[str] = Query(None),
    gateway: GenerationGateway = Depends(get_generation_gateway),
):
    """Proxy a remote image back as an attachment"""
    image = await gateway.download_image(url, filename)
    safe_name = image.filename.replace('"', "")
    return Response(
        content=image.content,
        media_type=image.content_type,
        headers={"Content-Disposition": f'attachment; filename="{safe_name}"'},
    )
