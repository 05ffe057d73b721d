#!/usr/bin/env python3
"""批量图片优化演示脚本。

展示 py_image_optimizer_mcp 库的核心功能，包括：
- 提交图片并查看被拒绝的文件
- 按设置进行缩放和格式转换
- 通过事件流观察处理进度
- 查看汇总并导出结果
"""

from pathlib import Path

from PIL import Image, ImageDraw

from py_image_optimizer_mcp import ImageOptimizer, JobState
from py_image_optimizer_mcp.utils import EventFormatter, collect_image_files


def get_output_dir(subdir: str = "") -> Path:
    """获取输出目录 - 使用项目的 tmp 目录"""
    project_root = Path(__file__).parent.parent
    output_dir = project_root / "tmp" / "examples"
    if subdir:
        output_dir = output_dir / subdir
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def create_sample_images(directory: Path) -> None:
    """创建演示用的图片和一个非图片文件"""
    large = Image.new("RGB", (3200, 2400), color="white")
    draw = ImageDraw.Draw(large)
    for i in range(60):
        x, y = (i * 53) % 3200, (i * 41) % 2400
        color = (i * 5 % 256, i * 7 % 256, i * 11 % 256)
        draw.rectangle([x, y, x + 400, y + 300], fill=color)
    large.save(directory / "landscape.png", "PNG")

    small = Image.new("RGBA", (400, 400), color=(0, 0, 0, 0))
    draw = ImageDraw.Draw(small)
    for i in range(10):
        draw.ellipse(
            [i * 30, i * 30, i * 30 + 120, i * 30 + 120],
            fill=(255 - i * 20, 100 + i * 15, i * 25, 180),
        )
    small.save(directory / "transparent.png", "PNG")

    (directory / "corrupt.jpg").write_bytes(b"\xff\xd8 not really a jpeg")
    (directory / "notes.txt").write_text("这不是图片", encoding="utf-8")


def demo_batch_optimize() -> None:
    """演示批量优化"""
    print("\n🎯 批量优化演示")
    print("=" * 50)

    source_dir = get_output_dir("source")
    create_sample_images(source_dir)

    optimizer = ImageOptimizer()
    files, unreadable = collect_image_files(sorted(source_dir.iterdir()))
    state = optimizer.submit(files)
    print(f"📥 已接受 {len(state.accepted)} 个文件")
    for rejection in [*unreadable, *state.rejected]:
        print(f"  ⚠️ 拒绝 {rejection.name}: {rejection.message}")

    settings = optimizer.configure(quality=75, target_format="webp", max_width=1280)
    jobs = optimizer.queue.pending()
    formatter = EventFormatter(jobs)

    for line in formatter.run_header(settings):
        print(line)
    for event in optimizer.run(concurrency=2):
        for line in formatter.format_event(event):
            print(line)

    summary = optimizer.get_summary()
    for line in formatter.run_footer(summary):
        print(line)

    written = optimizer.export(get_output_dir("optimized"))
    print(f"💾 导出 {len(written)} 个文件")
    for path in written:
        print(f"  - {path.name}")

    failed = [job for job in jobs if job.state is JobState.FAILED]
    for job in failed:
        print(f"  ✗ {job.name}: {job.result.get_summary() if job.result else ''}")


if __name__ == "__main__":
    demo_batch_optimize()
