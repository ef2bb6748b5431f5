"""공용 타입 정의"""

from typing import Literal

PdfAction = Literal["merge", "split", "compress", "rotate", "watermark", "info"]
ImageAction = Literal["compress", "resize", "convert", "upscale", "info"]
ConversionType = Literal[
    "pdf-to-docx",
    "pdf-to-pptx",
    "docx-to-pdf",
    "pptx-to-pdf",
    "doc-to-pdf",
    "ppt-to-pdf",
]
JobStatus = Literal["pending", "processing", "finished", "error"]
ResizeFit = Literal["cover", "contain", "fill", "inside", "outside"]
