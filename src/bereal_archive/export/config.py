"""Configuration models for export."""

from pydantic import BaseModel, Field, ConfigDict


class ExportConfig(BaseModel):
    """Compositing and bundle naming settings."""

    model_config = ConfigDict(extra='forbid')

    jpeg_quality: int = Field(
        default=95,
        ge=1,
        le=100,
        description="JPEG quality of merged images and converted stills"
    )
    date_format: str = Field(
        default="%Y-%m-%d-%H-%M-%S",
        description="strftime format of per-capture folder names in batch exports"
    )
    convert_stills_to_jpeg: bool = Field(
        default=True,
        description="Re-encode non-JPEG stills (BeReal stores WebP) so .jpg names match their content"
    )
