# services.py
import logging
import re

import pykakasi
import requests

from config import Config

logger = logging.getLogger(__name__)

# 汉字（CJK 统一表意文字 + 扩展 A）
KANJI_PATTERN = re.compile(r'[一-龯㐀-䶿]')

# 浏览器能直接播放的音频类型
PLAYABLE_AUDIO_TYPES = ('mp3', 'mpeg', 'webm', 'ogg', 'wav')

TTS_HEADERS = {
    'User-Agent': (
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
    ),
    'Referer': 'https://translate.google.com/',
    'Accept': 'audio/webm,audio/ogg,audio/wav,audio/*;q=0.9,application/ogg;q=0.7,*/*;q=0.5',
}


def has_kanji(text):
    return bool(text) and KANJI_PATTERN.search(text) is not None


def empty_readings():
    return {'hiragana': '', 'katakana': '', 'romaji': ''}


class TtsUpstreamError(Exception):
    """TTS 上游返回了非 200 状态码"""

    def __init__(self, status_code):
        super().__init__(f'TTS upstream returned HTTP {status_code}')
        self.status_code = status_code


class KanjiReader:
    """基于 pykakasi 词典的汉字读音转换

    用法与 Flask 扩展相同：先创建实例，再 init_app(app)。
    词典在 init_app 时就加载好，而不是第一次请求时才初始化。
    """

    def __init__(self, app=None):
        self._kakasi = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.init()
        app.extensions['kanji_reader'] = self

    def init(self):
        if self._kakasi is not None:
            return
        try:
            self._kakasi = pykakasi.kakasi()
            logger.info('pykakasi 初始化成功')
        except Exception as e:
            logger.error('pykakasi 初始化失败: %s', e)
            self._kakasi = None

    @property
    def ready(self):
        return self._kakasi is not None

    def convert(self, text):
        """返回 {hiragana, katakana, romaji}；不含汉字或转换失败时全部为空"""
        text = (text or '').strip()
        if not text or not has_kanji(text):
            # 纯假名/罗马字交给客户端的本地转换
            return empty_readings()
        if not self.ready:
            logger.error('pykakasi 未初始化，返回空值')
            return empty_readings()

        try:
            items = self._kakasi.convert(text)
        except Exception as e:
            logger.error('读音转换出错: %s', e)
            return empty_readings()

        result = {
            'hiragana': ''.join(item.get('hira', '') for item in items),
            'katakana': ''.join(item.get('kana', '') for item in items),
            'romaji': ''.join(item.get('hepburn', '') for item in items),
        }
        logger.debug('转换结果 %s -> %s', text, result)
        return result


def normalize_audio_content_type(content_type):
    """上游返回浏览器不支持的类型时，统一当作 mp3"""
    content_type = content_type or 'audio/mpeg'
    if not any(kind in content_type for kind in PLAYABLE_AUDIO_TYPES):
        logger.warning('不支持的音频格式 %s，改用 audio/mpeg', content_type)
        return 'audio/mpeg'
    return content_type


def fetch_tts_audio(text, timeout=None):
    """从 Google 翻译 TTS 获取日文语音，返回 (音频字节, Content-Type)

    网络错误直接抛出 requests 的异常，非 200 抛出 TtsUpstreamError。
    """
    params = {
        'ie': 'UTF-8',
        'tl': Config.TTS_LANG,
        'client': 'tw-ob',
        'textlen': len(text),
        'q': text,
    }
    logger.info('TTS 请求，文字: %s', text)
    response = requests.get(
        Config.TTS_ENDPOINT,
        params=params,
        headers=TTS_HEADERS,
        timeout=timeout or Config.REQUEST_TIMEOUT,
    )
    if response.status_code != 200:
        logger.error('TTS 响应状态码: %s', response.status_code)
        raise TtsUpstreamError(response.status_code)

    content_type = normalize_audio_content_type(response.headers.get('Content-Type'))
    return response.content, content_type
