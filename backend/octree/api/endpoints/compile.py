"""
Stand-alone LaTeX compile endpoint.
"""

import base64

from fastapi import APIRouter

from octree.schemas.latex import LatexCompileRequest, LatexCompileResponse
from octree.services.latex_compiler_service import latex_compiler_service

router = APIRouter()


@router.post("/", response_model=LatexCompileResponse)
async def compile_latex(payload: LatexCompileRequest):
    result = await latex_compiler_service.compile(
        payload.tex_source,
        safe_mode=payload.safe_mode,
        preferred_engine=payload.preferred_engine,
    )
    return LatexCompileResponse(
        success=result.success,
        engine=result.engine,
        pdf_base64=base64.b64encode(result.pdf_bytes).decode("ascii") if result.pdf_bytes else None,
        error_message=result.error_message,
        log=result.log,
        exit_code=result.exit_code,
    )
