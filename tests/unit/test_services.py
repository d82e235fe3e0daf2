import pytest
import allure
import requests
from unittest.mock import patch, MagicMock

# 要测试的函数
from services import (
    KanjiReader,
    TtsUpstreamError,
    fetch_tts_audio,
    normalize_audio_content_type,
)
from config import Config

pytestmark = pytest.mark.unit

# ==================== Allure 标签定义 ====================
CONVERT_FEATURE = "词典转换"
TTS_FEATURE = "TTS 代理"

BLOCKER = allure.severity_level.BLOCKER
CRITICAL = allure.severity_level.CRITICAL
NORMAL = allure.severity_level.NORMAL


# ==================== 辅助函数 ====================
def create_mock_tts_response(status_code=200, content=b'ID3', content_type='audio/mpeg'):
    """创建模拟的 TTS 上游回应"""
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.content = content
    mock_response.headers = {'Content-Type': content_type} if content_type else {}
    return mock_response


def make_reader(items=None, error=None):
    reader = KanjiReader()
    reader._kakasi = MagicMock()
    if error:
        reader._kakasi.convert.side_effect = error
    else:
        reader._kakasi.convert.return_value = items or []
    return reader


# ==================== 词典转换测试 ====================
@allure.epic("服务端单元测试")
@allure.feature(CONVERT_FEATURE)
class TestKanjiReader:

    @allure.title("汉字转换为三种读音")
    @allure.severity(BLOCKER)
    def test_convert_joins_items(self):
        reader = make_reader([
            {'orig': '食', 'hira': 'た', 'kana': 'タ', 'hepburn': 'ta'},
            {'orig': 'べ物', 'hira': 'べもの', 'kana': 'ベモノ', 'hepburn': 'bemono'},
        ])

        result = reader.convert(' 食べ物 ')

        assert result == {'hiragana': 'たべもの', 'katakana': 'タベモノ', 'romaji': 'tabemono'}
        reader._kakasi.convert.assert_called_once_with('食べ物')

    @allure.title("不含汉字时返回空值")
    @allure.severity(NORMAL)
    @pytest.mark.parametrize("text", ["こんにちは", "densha", "", "   "])
    def test_non_kanji_returns_empty(self, text):
        reader = make_reader()
        assert reader.convert(text) == {'hiragana': '', 'katakana': '', 'romaji': ''}
        reader._kakasi.convert.assert_not_called()

    @allure.title("转换出错时返回空值")
    @allure.severity(CRITICAL)
    def test_convert_error_returns_empty(self):
        reader = make_reader(error=RuntimeError('dict broken'))
        assert reader.convert('電車') == {'hiragana': '', 'katakana': '', 'romaji': ''}

    @allure.title("初始化失败时返回空值")
    @allure.severity(CRITICAL)
    def test_not_ready_returns_empty(self):
        with patch('services.pykakasi.kakasi', side_effect=OSError('no dict')):
            reader = KanjiReader()
            reader.init()
        assert reader.ready is False
        assert reader.convert('電車') == {'hiragana': '', 'katakana': '', 'romaji': ''}

    @allure.title("真实词典：電車")
    @allure.severity(NORMAL)
    def test_real_dictionary(self):
        reader = KanjiReader()
        reader.init()
        result = reader.convert('電車')
        assert result['hiragana'] == 'でんしゃ'
        assert result['katakana'] == 'デンシャ'
        assert result['romaji'] == 'densha'


# ==================== TTS 测试 ====================
@allure.epic("服务端单元测试")
@allure.feature(TTS_FEATURE)
class TestFetchTtsAudio:

    @allure.title("成功获取音频")
    @allure.severity(BLOCKER)
    @patch("services.requests.get")
    def test_fetch_success(self, mock_get):
        mock_get.return_value = create_mock_tts_response()

        audio, content_type = fetch_tts_audio('すし')

        assert audio == b'ID3'
        assert content_type == 'audio/mpeg'
        with allure.step("验证请求参数"):
            kwargs = mock_get.call_args.kwargs
            assert mock_get.call_args.args[0] == Config.TTS_ENDPOINT
            assert kwargs['params']['tl'] == 'ja'
            assert kwargs['params']['q'] == 'すし'
            assert kwargs['params']['textlen'] == 2
            assert 'Referer' in kwargs['headers']

    @allure.title("上游非 200")
    @allure.severity(CRITICAL)
    @patch("services.requests.get")
    def test_fetch_upstream_error(self, mock_get):
        mock_get.return_value = create_mock_tts_response(status_code=429)
        with pytest.raises(TtsUpstreamError) as exc:
            fetch_tts_audio('すし')
        assert exc.value.status_code == 429

    @allure.title("网络错误直接抛出")
    @allure.severity(CRITICAL)
    @patch("services.requests.get", side_effect=requests.ConnectionError('down'))
    def test_fetch_transport_error(self, _):
        with pytest.raises(requests.ConnectionError):
            fetch_tts_audio('すし')

    @pytest.mark.parametrize("content_type, expected", [
        ('audio/mpeg', 'audio/mpeg'),
        ('audio/ogg; codecs=opus', 'audio/ogg; codecs=opus'),
        ('application/octet-stream', 'audio/mpeg'),
        (None, 'audio/mpeg'),
    ])
    def test_normalize_content_type(self, content_type, expected):
        assert normalize_audio_content_type(content_type) == expected
