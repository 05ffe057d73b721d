"""尺寸规划测试。"""

import pytest

from py_image_optimizer_mcp.core.planner import apply_plan, plan_transform
from py_image_optimizer_mcp.exceptions import ConfigError, DecodeError
from tests.conftest import make_image


class TestPlanTransform:
    """plan_transform 测试"""

    def test_landscape_limited_by_height(self):
        """横图按更严格的一边缩放"""
        plan = plan_transform(4000, 3000, 1920, 1080)

        assert plan.target_dimensions == (1440, 1080)
        assert plan.needs_resize

    def test_within_bounds_unchanged(self):
        """在范围内的图片保持原尺寸"""
        plan = plan_transform(800, 600, 1920, 1080)

        assert plan.target_dimensions == (800, 600)
        assert not plan.needs_resize

    def test_never_upscales(self):
        """小图不放大"""
        plan = plan_transform(10, 10, 5000, 5000)
        assert plan.target_dimensions == (10, 10)

    def test_exact_bounds_unchanged(self):
        """刚好等于上限时不缩放"""
        plan = plan_transform(1920, 1080, 1920, 1080)
        assert not plan.needs_resize

    def test_portrait_limited_by_height(self):
        """竖图由高度决定缩放比"""
        plan = plan_transform(1080, 1920, 1920, 1080)

        assert plan.target_height == 1080
        assert plan.target_width <= 1920
        assert abs(plan.target_width / plan.target_height - 1080 / 1920) < 0.01

    @pytest.mark.parametrize(
        ("source", "bounds"),
        [
            ((4000, 3000), (1920, 1080)),
            ((3000, 4000), (1920, 1080)),
            ((5000, 200), (1000, 1000)),
            ((1234, 5678), (640, 480)),
        ],
    )
    def test_fits_bounds_and_keeps_aspect_ratio(self, source, bounds):
        """输出在上限内且宽高比误差不超过一个像素"""
        plan = plan_transform(*source, *bounds)
        sw, sh = source
        tw, th = plan.target_dimensions

        assert tw <= bounds[0]
        assert th <= bounds[1]
        assert abs(tw * sh - th * sw) <= max(sw, sh)

    def test_extreme_aspect_ratio_keeps_one_pixel(self):
        """极端宽高比时较短边至少保留 1 像素"""
        plan = plan_transform(10000, 1, 100, 100)

        assert plan.target_dimensions == (100, 1)

    @pytest.mark.parametrize(("max_width", "max_height"), [(0, 100), (100, 0), (-5, 10)])
    def test_non_positive_bounds_rejected(self, max_width, max_height):
        """非正数的上限是配置错误"""
        with pytest.raises(ConfigError):
            plan_transform(100, 100, max_width, max_height)

    @pytest.mark.parametrize(("width", "height"), [(0, 100), (100, 0)])
    def test_zero_source_dimension_is_decode_error(self, width, height):
        """源尺寸为 0 视为解码失败"""
        with pytest.raises(DecodeError):
            plan_transform(width, height, 100, 100)


class TestApplyPlan:
    """apply_plan 测试"""

    def test_resizes_to_planned_dimensions(self):
        """按规划尺寸缩放"""
        img = make_image((400, 300))
        plan = plan_transform(400, 300, 200, 200)

        resized = apply_plan(img, plan)

        assert resized.size == (200, 150)

    def test_returns_same_image_when_no_resize(self):
        """无需缩放时返回原对象"""
        img = make_image((40, 30))
        plan = plan_transform(40, 30, 200, 200)

        assert apply_plan(img, plan) is img
