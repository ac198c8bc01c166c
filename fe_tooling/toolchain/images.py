"""
图片优化适配器 - Pillow 重新编码 / svgo

职责：
1. PNG/JPEG/GIF 用 Pillow 无损（或保持原质量）重新编码
2. SVG 交给 svgo（未配置则跳过）
3. 仅在结果更小时回写原文件

测试要点：
- test_optimize_png: PNG 压缩级别随 production 变化
- test_optimize_not_smaller: 结果不更小时不改写
- test_optimize_broken_image: 无法解析时抛 OptimizeError
"""

from __future__ import annotations

import io
import logging
import tempfile
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..config import BuildConfig, get_config
from ..interfaces import IImageOptimizer, OptimizeError
from .external import ExternalTool

logger = logging.getLogger(__name__)

# optimizationLevel 3 / 1 对应的 zlib 压缩级别
PNG_LEVEL_PRODUCTION = 9
PNG_LEVEL_DEVELOPMENT = 6


class ImageOptimizer(IImageOptimizer):
    """图片优化器实现"""

    def __init__(self, config: BuildConfig | None = None):
        config = config or get_config()
        self.jpeg_quality = config.images.jpeg_quality
        self.svgo = ExternalTool(
            "svgo",
            config.tools.svgo,
            timeout=config.tools.timeout_sec,
            error_cls=OptimizeError,
            cwd=config.base_dir,
        )
        self._warned_svgo = False

    def optimize(self, path: Path, production: bool = False) -> bool:
        if not path.exists():
            raise OptimizeError(f"图片不存在: {path}")

        if path.suffix.lower() == ".svg":
            return self._optimize_svg(path)

        original = path.read_bytes()
        data = self._encode(path, original, production)
        if len(data) >= len(original):
            return False

        path.write_bytes(data)
        logger.debug(f"图片已优化: {path} {len(original)} -> {len(data)}")
        return True

    def _encode(self, path: Path, original: bytes, production: bool) -> bytes:
        try:
            with Image.open(io.BytesIO(original)) as image:
                image.load()
                fmt = image.format
                out = io.BytesIO()
                if fmt == "PNG":
                    level = PNG_LEVEL_PRODUCTION if production else PNG_LEVEL_DEVELOPMENT
                    # optimize=True 会强制最高压缩级别
                    image.save(out, format="PNG", optimize=production, compress_level=level)
                elif fmt == "JPEG":
                    quality = self.jpeg_quality if self.jpeg_quality is not None else "keep"
                    image.save(out, format="JPEG", quality=quality, optimize=True, progressive=True)
                elif fmt == "GIF":
                    animated = getattr(image, "n_frames", 1) > 1
                    image.save(out, format="GIF", optimize=True, save_all=animated)
                else:
                    raise OptimizeError(f"不支持的图片格式 {fmt}: {path}")
        except (UnidentifiedImageError, OSError) as e:
            raise OptimizeError(f"图片无法解析: {path}: {e}") from e
        return out.getvalue()

    def _optimize_svg(self, path: Path) -> bool:
        if not self.svgo.configured:
            if not self._warned_svgo:
                logger.warning("未配置 svgo，跳过 SVG 优化")
                self._warned_svgo = True
            return False

        original = path.read_bytes()
        with tempfile.TemporaryDirectory() as tmpdir:
            out_path = Path(tmpdir) / path.name
            self.svgo.run(["-i", str(path), "-o", str(out_path)])
            data = out_path.read_bytes()

        if len(data) >= len(original):
            return False
        path.write_bytes(data)
        return True
