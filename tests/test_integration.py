"""集成测试。

测试从磁盘读取、提交、优化、导出的完整流程以及 MCP 服务器的输出。
"""

from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from py_image_optimizer_mcp import ImageOptimizer, get_version
from py_image_optimizer_mcp.exceptions import (
    ConfigError,
    DecodeError,
    InvalidInputError,
    JobInFlightError,
)
from py_image_optimizer_mcp.models import (
    ErrorKind,
    JobState,
    OptimizationSettings,
    TargetFormat,
)
from py_image_optimizer_mcp.utils import file_helpers
from py_image_optimizer_mcp.utils.file_helpers import (
    collect_image_files,
    find_image_files,
    guess_mime_type,
    load_image_file,
)
from py_image_optimizer_mcp.utils.naming_helpers import (
    FileNamingStrategy,
    PathResolver,
)
from tests.conftest import encode_image, make_image, make_image_file, make_png_bytes


@pytest.fixture
def image_dir(temp_dir: Path) -> Path:
    """包含图片、子目录和文本文件的目录"""
    (temp_dir / "a.png").write_bytes(make_png_bytes((64, 48)))
    (temp_dir / "sub").mkdir()
    (temp_dir / "sub" / "b.jpg").write_bytes(encode_image(make_image((80, 60)), "JPEG"))
    (temp_dir / "notes.txt").write_text("not an image", encoding="utf-8")
    return temp_dir


class TestFileHelpers:
    """文件读取工具测试"""

    def test_find_image_files_recursive(self, image_dir: Path):
        """递归查找只返回图片扩展名的文件"""
        found = {p.relative_to(image_dir).as_posix() for p in find_image_files(image_dir)}
        assert found == {"a.png", "sub/b.jpg"}

    def test_find_image_files_flat(self, image_dir: Path):
        found = [p.name for p in find_image_files(image_dir, recursive=False)]
        assert found == ["a.png"]

    def test_find_image_files_exclude(self, image_dir: Path):
        found = [p.name for p in find_image_files(image_dir, exclude_dirs=["sub"])]
        assert found == ["a.png"]

    def test_find_in_missing_directory(self, temp_dir: Path):
        assert list(find_image_files(temp_dir / "missing")) == []

    def test_guess_mime_type(self, image_dir: Path):
        """MIME 类型优先按内容识别"""
        assert guess_mime_type(image_dir / "a.png") == "image/png"
        assert guess_mime_type(image_dir / "sub" / "b.jpg") == "image/jpeg"
        assert guess_mime_type(image_dir / "notes.txt") == "text/plain"

    def test_guess_mime_type_by_content(self, temp_dir: Path):
        """扩展名与内容不符时以内容为准"""
        path = temp_dir / "really_png.jpg"
        path.write_bytes(make_png_bytes())
        assert guess_mime_type(path) == "image/png"

    def test_load_image_file(self, image_dir: Path):
        image = load_image_file(image_dir / "a.png")

        assert image.name == "a.png"
        assert image.mime_type == "image/png"
        assert image.byte_length == len(image.data)
        assert image.source_path == image_dir / "a.png"

    def test_collect_mixed_paths(self, image_dir: Path):
        """目录按扩展名展开，直接给出的文件原样读取，缺失的路径被拒绝"""
        files, rejected = collect_image_files(
            [image_dir, image_dir / "notes.txt", image_dir / "missing.png"]
        )

        assert sorted(image.name for image in files) == ["a.png", "b.jpg", "notes.txt"]
        assert [r.name for r in rejected] == ["missing.png"]
        assert rejected[0].error_kind is ErrorKind.INVALID_INPUT

    def test_unreadable_file_rejected(
        self, image_dir: Path, monkeypatch: pytest.MonkeyPatch
    ):
        """读取失败的文件被拒绝，其余文件照常返回并入队"""
        original = file_helpers.load_image_file

        def flaky_load(file_path):
            if Path(file_path).name == "b.jpg":
                raise OSError(5, "Input/output error")
            return original(file_path)

        monkeypatch.setattr(file_helpers, "load_image_file", flaky_load)

        files, rejected = collect_image_files([image_dir])

        assert [image.name for image in files] == ["a.png"]
        assert len(rejected) == 1
        assert rejected[0].name == "b.jpg"
        assert "Input/output error" in rejected[0].message

        state = ImageOptimizer().submit(files)
        assert [job.name for job in state.jobs] == ["a.png"]


class TestNaming:
    """输出命名测试"""

    @pytest.mark.parametrize(
        ("name", "target_format", "suffix", "expected"),
        [
            ("photo.png", TargetFormat.WEBP, "_optimized", "photo_optimized.webp"),
            ("photo.png", TargetFormat.JPEG, "", "photo.jpg"),
            ("archive.tar.png", TargetFormat.AVIF, "", "archive.tar.avif"),
            ("noext", TargetFormat.PNG, "_optimized", "noext_optimized.png"),
        ],
    )
    def test_generate_output_name(self, name, target_format, suffix, expected):
        result = FileNamingStrategy.generate_output_name(name, target_format, suffix)
        assert result == expected

    def test_ensure_unique_path(self, temp_dir: Path):
        """已存在的路径追加数字后缀"""
        path = temp_dir / "a.png"
        assert PathResolver.ensure_unique_path(path) == path

        path.write_bytes(b"x")
        (temp_dir / "a_1.png").write_bytes(b"x")
        assert PathResolver.ensure_unique_path(path) == temp_dir / "a_2.png"


class TestEndToEnd:
    """完整流程测试"""

    def test_submit_from_disk_rejects_text(self, image_dir: Path):
        """文本文件被拒绝，图片照常入队"""
        optimizer = ImageOptimizer()
        files, unreadable = collect_image_files(
            [image_dir / "a.png", image_dir / "notes.txt"]
        )
        state = optimizer.submit(files)

        assert unreadable == []
        assert [job.name for job in state.jobs] == ["a.png"]
        assert len(state.rejected) == 1
        assert state.rejected[0].name == "notes.txt"
        assert state.rejected[0].error_kind is ErrorKind.INVALID_INPUT

    def test_optimize_directory(
        self, image_dir: Path, png_settings: OptimizationSettings
    ):
        """目录中的图片全部优化成功"""
        optimizer = ImageOptimizer(settings=png_settings)
        files, _ = collect_image_files([image_dir])
        optimizer.submit(files)

        summary = optimizer.optimize(concurrency=2)

        assert summary.succeeded == 2
        assert summary.failed == 0
        assert summary.total_original_size == sum(
            job.file.byte_length for job in optimizer.get_queue()
        )

    def test_reset(self, png_settings: OptimizationSettings):
        """重置清空队列、汇总并恢复默认设置"""
        optimizer = ImageOptimizer(settings=png_settings)
        optimizer.configure(quality=20)
        optimizer.submit([make_image_file()])
        optimizer.optimize()

        optimizer.reset()

        assert optimizer.get_queue() == ()
        assert optimizer.get_summary().total == 0
        assert optimizer.settings == OptimizationSettings()

    def test_remove_via_facade(self, optimizer: ImageOptimizer):
        optimizer.submit([make_image_file("a.png"), make_image_file("b.png")])

        assert optimizer.remove(0).name == "a.png"
        assert [job.name for job in optimizer.get_queue()] == ["b.png"]
        with pytest.raises(InvalidInputError):
            optimizer.remove(5)

    def test_summary_excludes_removed_jobs(self, optimizer: ImageOptimizer):
        """运行后移除的任务不再计入汇总"""
        optimizer.submit([make_image_file("a.png"), make_image_file("b.png")])
        optimizer.optimize()

        optimizer.remove(0)

        assert optimizer.get_summary().succeeded == 1

    def test_get_version(self):
        assert get_version()


class TestExport:
    """结果导出测试"""

    def test_keep_original(self, image_dir: Path, png_settings: OptimizationSettings):
        """保留原文件时输出带后缀的文件名"""
        optimizer = ImageOptimizer(settings=png_settings)
        optimizer.submit([load_image_file(image_dir / "a.png")])
        optimizer.optimize()

        written = optimizer.export(image_dir / "out")

        assert written == [image_dir / "out" / "a_optimized.png"]
        assert (image_dir / "a.png").exists()
        with Image.open(written[0]) as img:
            assert img.size == (64, 48)

    def test_replace_original(self, image_dir: Path, png_settings: OptimizationSettings):
        """不保留原文件时删除源文件"""
        settings = png_settings.model_copy(
            update={"target_format": TargetFormat.JPEG, "keep_original": False}
        )
        optimizer = ImageOptimizer(settings=settings)
        optimizer.submit([load_image_file(image_dir / "a.png")])
        optimizer.optimize()

        written = optimizer.export(image_dir)

        assert written == [image_dir / "a.jpg"]
        assert not (image_dir / "a.png").exists()

    def test_replace_original_other_directory_keeps_source(
        self, image_dir: Path, png_settings: OptimizationSettings
    ):
        """不保留原文件但输出到其他目录时，源文件不被删除"""
        settings = png_settings.model_copy(
            update={"target_format": TargetFormat.JPEG, "keep_original": False}
        )
        optimizer = ImageOptimizer(settings=settings)
        optimizer.submit([load_image_file(image_dir / "a.png")])
        optimizer.optimize()

        written = optimizer.export(image_dir / "out")

        assert written == [image_dir / "out" / "a.jpg"]
        assert (image_dir / "a.png").exists()

    def test_overwrite_same_path(
        self, image_dir: Path, png_settings: OptimizationSettings
    ):
        """输出路径与源文件相同时直接覆盖"""
        settings = png_settings.model_copy(update={"keep_original": False})
        optimizer = ImageOptimizer(settings=settings)
        optimizer.submit([load_image_file(image_dir / "a.png")])
        optimizer.optimize()
        result = optimizer.get_queue()[0].result

        written = optimizer.export(image_dir)

        assert written == [image_dir / "a.png"]
        assert result is not None
        assert (image_dir / "a.png").read_bytes() == result.data

    def test_unique_names(self, temp_dir: Path, png_settings: OptimizationSettings):
        """重复导出不覆盖已有文件"""
        optimizer = ImageOptimizer(settings=png_settings)
        optimizer.submit([make_image_file("a.png")])
        optimizer.optimize()

        first = optimizer.export(temp_dir)
        second = optimizer.export(temp_dir)

        assert first == [temp_dir / "a_optimized.png"]
        assert second == [temp_dir / "a_optimized_1.png"]

    def test_failed_jobs_skipped(
        self, temp_dir: Path, optimizer: ImageOptimizer, three_files
    ):
        optimizer.submit(three_files)
        optimizer.optimize()

        written = optimizer.export(temp_dir / "out")

        assert [p.name for p in written] == [
            "first_optimized.png",
            "third_optimized.png",
        ]


class TestMCPServer:
    """MCP 服务器测试"""

    def test_server_importable(self):
        from py_image_optimizer_mcp import mcp_server

        assert mcp_server.mcp is not None
        assert mcp_server.optimizer is not None

    def test_queue_lines(self):
        from py_image_optimizer_mcp.mcp_server import queue_lines

        assert queue_lines(()) == ["> 队列为空"]

        optimizer = ImageOptimizer()
        state = optimizer.submit([make_image_file("a.png"), make_image_file("b.png")])
        lines = queue_lines(state.jobs)
        assert lines[0] == "> 队列中共 2 个文件:"
        assert lines[1].startswith("  1. a.png")
        assert lines[2].endswith("[queued]")

    def test_settings_lines(self):
        from py_image_optimizer_mcp.mcp_server import settings_lines

        lines = settings_lines(OptimizationSettings(quality=70, target_format="jpg"))
        assert "  - 质量: 70%" in lines
        assert "  - 格式: JPEG" in lines
        assert "  - 保留原文件: 是" in lines

    def test_run_with_transcript(
        self, png_settings: OptimizationSettings, three_files
    ):
        """运行输出包含每张图片的处理过程和汇总"""
        from py_image_optimizer_mcp.mcp_server import run_with_transcript

        optimizer = ImageOptimizer(settings=png_settings)
        optimizer.submit(three_files)

        lines, summary = run_with_transcript(optimizer)

        assert summary.succeeded == 2
        assert "> 开始优化..." in lines
        assert "> [1/3] 处理中: first.png" in lines
        assert any(line.startswith("  └─ ✗ [2/3] 失败") for line in lines)
        assert "> 成功: 2/3 张图片" in lines

    def test_payloads(self, optimizer: ImageOptimizer, three_files):
        from py_image_optimizer_mcp.mcp_server import job_payload, summary_payload

        optimizer.submit(three_files)
        summary = optimizer.optimize()

        payload = summary_payload(summary)
        assert payload["succeeded"] == 2
        assert payload["total"] == 3

        failed = job_payload(optimizer.get_queue()[1])
        assert failed["state"] == "failed"
        assert failed["error_kind"] == "DecodeError"
        assert "data" not in failed

        succeeded = job_payload(optimizer.get_queue()[0])
        assert succeeded["target_format"] == "png"
        assert succeeded["output_dimensions"] == [64, 48]

    @pytest.mark.parametrize(
        ("error", "error_type"),
        [
            (ConfigError("bad quality"), "validation"),
            (InvalidInputError("bad file", "x.txt"), "file"),
            (JobInFlightError("busy"), "processing"),
            (DecodeError("corrupt"), "processing"),
        ],
    )
    def test_error_responses(self, error, error_type):
        from py_image_optimizer_mcp.mcp_server import MCPResponseBuilder

        response = MCPResponseBuilder.from_exception(error, "测试")

        assert response["success"] is False
        assert response["error_type"] == error_type
        assert response["error"] == error.message


def test_encoded_output_is_valid_image(png_settings: OptimizationSettings):
    """编码结果可以被 Pillow 重新打开"""
    optimizer = ImageOptimizer(
        settings=png_settings.model_copy(update={"target_format": TargetFormat.JPEG})
    )
    optimizer.submit([make_image_file("a.png", size=(30, 30))])
    optimizer.optimize()

    job = optimizer.get_queue()[0]
    assert job.state is JobState.SUCCEEDED
    assert job.result is not None
    with Image.open(BytesIO(job.result.data)) as img:
        assert img.format == "JPEG"
        assert img.size == (30, 30)
