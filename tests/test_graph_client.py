"""
Graph资源客户端测试
"""
import pytest
from unittest.mock import patch, MagicMock
from requests.exceptions import Timeout

from apple_token_monitor.services.graph_auth import GraphSession
from apple_token_monitor.services.graph_client import GraphResourceClient
from apple_token_monitor.services.error_handler import ResourceFetchError


def make_response(status_code=200, payload=None, content=b'{}'):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.content = content
    response.text = str(payload)
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


class TestGraphResourceClient:
    """Graph资源客户端测试类"""

    def setup_method(self):
        """测试前准备"""
        self.session = GraphSession(access_token='token', base_url='https://graph.microsoft.com/beta', timeout=7)
        self.client = GraphResourceClient(self.session)

    @patch('apple_token_monitor.services.graph_client.requests.get')
    def test_get_success(self, mock_get):
        """测试读取成功"""
        mock_get.return_value = make_response(payload={'expirationDateTime': '2026-03-15T00:00:00Z'})

        document = self.client.get('deviceManagement/applePushNotificationCertificate')

        assert document == {'expirationDateTime': '2026-03-15T00:00:00Z'}
        args, kwargs = mock_get.call_args
        assert args[0] == 'https://graph.microsoft.com/beta/deviceManagement/applePushNotificationCertificate'
        assert kwargs['headers']['Authorization'] == 'Bearer token'
        assert kwargs['timeout'] == 7

    @pytest.mark.parametrize("status_code", [204, 404])
    @patch('apple_token_monitor.services.graph_client.requests.get')
    def test_get_missing_resource(self, mock_get, status_code):
        """测试资源不存在"""
        mock_get.return_value = make_response(status_code=status_code, content=b'')

        assert self.client.get('deviceAppManagement/vppTokens') is None

    @patch('apple_token_monitor.services.graph_client.requests.get')
    def test_get_empty_document(self, mock_get):
        """测试空文档"""
        mock_get.return_value = make_response(payload={})

        assert self.client.get('deviceAppManagement/vppTokens') is None

    @patch('apple_token_monitor.services.graph_client.requests.get')
    def test_get_http_error(self, mock_get):
        """测试HTTP错误"""
        mock_get.return_value = make_response(status_code=403, payload={'error': 'Forbidden'})

        with pytest.raises(ResourceFetchError) as exc_info:
            self.client.get('deviceManagement/depOnboardingSettings')

        assert exc_info.value.status_code == 403

    @patch('apple_token_monitor.services.graph_client.requests.get')
    def test_get_timeout(self, mock_get):
        """测试请求超时"""
        mock_get.side_effect = Timeout("read timed out")

        with pytest.raises(ResourceFetchError):
            self.client.get('deviceManagement/depOnboardingSettings')

    @patch('apple_token_monitor.services.graph_client.requests.get')
    def test_get_invalid_json(self, mock_get):
        """测试响应不是JSON"""
        mock_get.return_value = make_response(payload=ValueError("no json"), content=b'<html>')

        with pytest.raises(ResourceFetchError):
            self.client.get('deviceManagement/depOnboardingSettings')
