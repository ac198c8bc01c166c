"""
页面性能审计 - PageSpeed Insights v5 API

默认使用免费（无 API key）额度；设置 FE_TOOLING_PAGESPEED_KEY 环境变量可使用自己的 key
"""

from __future__ import annotations

import os

import requests

from ..interfaces import AuditError, IPageAuditor

PAGESPEED_ENDPOINT = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"


class PageSpeedClient(IPageAuditor):
    """PageSpeed Insights 客户端"""

    def __init__(self, api_key: str | None = None, timeout: int = 60):
        self.api_key = api_key or os.environ.get("FE_TOOLING_PAGESPEED_KEY")
        self.timeout = timeout

    def audit(self, url: str, strategy: str = "mobile") -> dict:
        if not url:
            raise AuditError("未设置待审计的页面地址(project.url)")

        params = {"url": url, "strategy": strategy, "category": "performance"}
        if self.api_key:
            params["key"] = self.api_key

        try:
            response = requests.get(PAGESPEED_ENDPOINT, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise AuditError(f"PageSpeed 请求失败: {e}") from e
        except ValueError as e:
            raise AuditError(f"PageSpeed 响应无法解析: {e}") from e

        return summarize(data, url, strategy)


def summarize(data: dict, url: str, strategy: str) -> dict:
    """提取性能得分与主要指标"""
    lighthouse = data.get("lighthouseResult", {})
    performance = lighthouse.get("categories", {}).get("performance", {})
    score = performance.get("score")
    audits = lighthouse.get("audits", {})

    metrics = {}
    for key in ("first-contentful-paint", "largest-contentful-paint", "speed-index", "total-blocking-time"):
        audit = audits.get(key)
        if audit and "displayValue" in audit:
            metrics[key] = audit["displayValue"]

    return {
        "url": url,
        "strategy": strategy,
        "score": round(score * 100) if isinstance(score, (int, float)) else None,
        "metrics": metrics,
    }
