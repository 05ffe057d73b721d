"""输入图片模型。"""

from pathlib import Path
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class ImageFile(BaseModel):
    """一张待优化的源图片，入队后不可变"""

    model_config = ConfigDict(frozen=True)

    file_id: str = Field(default_factory=lambda: uuid4().hex, description="文件标识")
    name: str = Field(min_length=1, description="文件名")
    mime_type: str = Field(description="声明的 MIME 类型")
    byte_length: int = Field(ge=0, description="声明的字节数")
    data: bytes = Field(repr=False, description="原始字节")
    source_path: Path | None = Field(None, description="磁盘来源路径")

    @property
    def length_matches(self) -> bool:
        """声明的字节数是否与实际负载一致"""
        return self.byte_length == len(self.data)
