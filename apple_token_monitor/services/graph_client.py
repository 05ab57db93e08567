"""
Graph资源读取服务
"""
import logging
from typing import Any, Dict, Optional

import requests
from requests.exceptions import RequestException

from ..interfaces import ResourceClientInterface
from .error_handler import ResourceFetchError
from .graph_auth import GraphSession


class GraphResourceClient(ResourceClientInterface):
    """Graph资源客户端"""

    def __init__(self, session: GraphSession):
        """
        初始化资源客户端

        Args:
            session: 已认证的Graph会话
        """
        self.session = session
        self.logger = logging.getLogger(__name__)

    def build_url(self, path: str) -> str:
        return f"{self.session.base_url.rstrip('/')}/{path.lstrip('/')}"

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        """
        读取Graph资源

        Args:
            path: 相对于Graph地址的资源路径

        Returns:
            Optional[Dict[str, Any]]: JSON文档，资源不存在或为空时返回None

        Raises:
            ResourceFetchError: 网络错误、HTTP错误或响应不是JSON
        """
        url = self.build_url(path)
        self.logger.debug(f"GET {url}")

        try:
            response = requests.get(url, headers=self.session.auth_headers(), timeout=self.session.timeout)
        except RequestException as e:
            raise ResourceFetchError(f"请求 {path} 失败: {str(e)}") from e

        self.logger.debug(f"{path} 返回 HTTP {response.status_code}")

        if response.status_code in (204, 404):
            return None

        if not response.ok:
            raise ResourceFetchError(
                f"请求 {path} 返回 HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code
            )

        if not response.content:
            return None

        try:
            document = response.json()
        except ValueError as e:
            raise ResourceFetchError(f"{path} 的响应不是有效的JSON", status_code=response.status_code) from e

        return document or None
