"""运行摘要模型。"""

from pydantic import BaseModel, ConfigDict, Field

from .result import BaseResult


class RunSummary(BaseModel):
    """一次运行的汇总统计，每次按需重新计算"""

    model_config = ConfigDict(frozen=True)

    succeeded: int = Field(0, ge=0, description="成功数量")
    failed: int = Field(0, ge=0, description="失败数量")
    pending: int = Field(0, ge=0, description="未被处理的任务数量")
    total_original_size: int = Field(0, ge=0, description="成功任务的原始总大小")
    total_encoded_size: int = Field(0, ge=0, description="成功任务的编码后总大小")
    savings_percent: float = Field(0.0, description="整体节省比例（百分比）")

    @property
    def total(self) -> int:
        """本次运行涉及的任务总数"""
        return self.succeeded + self.failed + self.pending

    def get_total_size_saved(self) -> int:
        """总节省字节数"""
        return self.total_original_size - self.total_encoded_size

    def get_success_rate(self) -> float:
        """成功率（百分比）"""
        finished = self.succeeded + self.failed
        if finished == 0:
            return 0.0
        return (self.succeeded / finished) * 100

    def get_summary(self) -> str:
        """摘要文本"""
        saved = BaseResult.format_size(self.get_total_size_saved())
        text = (
            f"成功 {self.succeeded}/{self.total} 张图片, "
            f"总共节省 {self.savings_percent:.1f}% ({saved})"
        )
        if self.pending:
            text += f", {self.pending} 张未处理"
        return text
