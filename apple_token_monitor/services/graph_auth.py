"""
Microsoft Graph 认证服务

使用运行环境自带的身份（托管身份或环境变量中的应用凭据）获取访问令牌，
不需要交互式输入凭据。
"""
import os
import re
import logging
from dataclasses import dataclass
from typing import Optional

import requests
from requests.exceptions import RequestException

from ..interfaces import SessionFactoryInterface
from .error_handler import AuthenticationError


GRAPH_RESOURCE = "https://graph.microsoft.com"
DEFAULT_GRAPH_BASE_URL = "https://graph.microsoft.com/beta"
DEFAULT_TIMEOUT = 30
MANAGED_IDENTITY_API_VERSION = "2019-08-01"
TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
_VERSION_SUFFIX = re.compile(r'/(v1\.0|beta)$')


def get_request_timeout() -> int:
    """从环境变量读取网络请求超时时间（秒）"""
    value = os.getenv('REQUEST_TIMEOUT', '')
    try:
        timeout = int(value)
    except ValueError:
        return DEFAULT_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_TIMEOUT


@dataclass(frozen=True)
class GraphSession:
    """已认证的Graph会话，运行期间只读"""
    access_token: str
    base_url: str = DEFAULT_GRAPH_BASE_URL
    timeout: int = DEFAULT_TIMEOUT
    identity_source: str = "unknown"

    @property
    def root_url(self) -> str:
        """不带版本号的Graph地址"""
        return _VERSION_SUFFIX.sub('', self.base_url.rstrip('/'))

    def auth_headers(self) -> dict:
        return {
            'Authorization': f"Bearer {self.access_token}",
            'Accept': 'application/json'
        }


class GraphSessionFactory(SessionFactoryInterface):
    """Graph会话工厂"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None):
        """
        初始化会话工厂

        Args:
            base_url: Graph API地址，如果为None则从环境变量 GRAPH_BASE_URL 读取
            timeout: 请求超时时间（秒），如果为None则从环境变量 REQUEST_TIMEOUT 读取
        """
        self.base_url = (base_url or os.getenv('GRAPH_BASE_URL') or DEFAULT_GRAPH_BASE_URL).rstrip('/')
        self.timeout = timeout or get_request_timeout()
        self.logger = logging.getLogger(__name__)

    def get_identity_source(self) -> Optional[str]:
        """
        检测可用的身份来源

        Returns:
            Optional[str]: "managed_identity"、"client_credentials" 或 None
        """
        if os.getenv('IDENTITY_ENDPOINT') and os.getenv('IDENTITY_HEADER'):
            return "managed_identity"
        if os.getenv('AZURE_TENANT_ID') and os.getenv('AZURE_CLIENT_ID') and os.getenv('AZURE_CLIENT_SECRET'):
            return "client_credentials"
        return None

    def authenticate(self) -> GraphSession:
        """
        获取已认证的Graph会话

        Returns:
            GraphSession: 会话对象

        Raises:
            AuthenticationError: 没有可用身份或令牌获取失败
        """
        source = self.get_identity_source()

        if source == "managed_identity":
            token = self._acquire_managed_identity_token()
        elif source == "client_credentials":
            token = self._acquire_client_credentials_token()
        else:
            raise AuthenticationError(
                "未找到可用身份: 需要 IDENTITY_ENDPOINT/IDENTITY_HEADER 或 "
                "AZURE_TENANT_ID/AZURE_CLIENT_ID/AZURE_CLIENT_SECRET"
            )

        self.logger.info(f"Graph认证成功，身份来源: {source}")
        return GraphSession(
            access_token=token,
            base_url=self.base_url,
            timeout=self.timeout,
            identity_source=source
        )

    def _acquire_managed_identity_token(self) -> str:
        """从托管身份端点获取令牌"""
        params = {
            'resource': GRAPH_RESOURCE,
            'api-version': MANAGED_IDENTITY_API_VERSION
        }
        # 用户分配的托管身份
        client_id = os.getenv('AZURE_CLIENT_ID')
        if client_id:
            params['client_id'] = client_id

        try:
            response = requests.get(
                os.environ['IDENTITY_ENDPOINT'],
                params=params,
                headers={'X-IDENTITY-HEADER': os.environ['IDENTITY_HEADER']},
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except (RequestException, ValueError) as e:
            raise AuthenticationError(f"托管身份令牌获取失败: {str(e)}") from e

        return self._extract_token(payload)

    def _acquire_client_credentials_token(self) -> str:
        """使用应用凭据获取令牌"""
        url = TOKEN_URL_TEMPLATE.format(tenant_id=os.environ['AZURE_TENANT_ID'])
        data = {
            'grant_type': 'client_credentials',
            'client_id': os.environ['AZURE_CLIENT_ID'],
            'client_secret': os.environ['AZURE_CLIENT_SECRET'],
            'scope': f"{GRAPH_RESOURCE}/.default"
        }

        try:
            response = requests.post(url, data=data, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (RequestException, ValueError) as e:
            raise AuthenticationError(f"应用凭据令牌获取失败: {str(e)}") from e

        return self._extract_token(payload)

    def _extract_token(self, payload) -> str:
        token = payload.get('access_token') if isinstance(payload, dict) else None
        if not token:
            raise AuthenticationError("令牌响应中缺少 access_token")
        return token
