# speech.py
"""日文发音播放

优先请求服务端的 TTS 代理（/api/tts），长文字按 200 字分段依次播放；
任何一段失败，就把这一段以及后面所有还没播的文字合成一句，交给本机的
语音合成（pyttsx3）。speak() 不会向调用方抛出异常。
"""
import io
import logging
import re

import pyttsx3
import requests
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError
from pydub.playback import play

from phonetics import has_kanji

logger = logging.getLogger(__name__)

MAX_SEGMENT_LENGTH = 200

# 切分优先级：句末标点 > 逗号类标点 > 空白
SENTENCE_ENDINGS = '。！？!?．.'
COMMA_MARKS = '、，,；;：:'

AUDIO_FORMATS = {
    'audio/mpeg': 'mp3',
    'audio/mp3': 'mp3',
    'audio/ogg': 'ogg',
    'audio/webm': 'webm',
    'audio/wav': 'wav',
    'audio/x-wav': 'wav',
}

JAPANESE_VOICE_ID = re.compile(r'(^|[^a-z])ja([-_]|$)|japan')


class PlaybackError(Exception):
    """音频解码或播放失败"""


def _latest_boundary(window, marks):
    index = max(window.rfind(mark) for mark in marks)
    return index + 1 if index >= 0 else 0


def _latest_whitespace(window):
    for index in range(len(window) - 1, -1, -1):
        if window[index].isspace():
            return index + 1
    return 0


def split_segments(text, max_length=MAX_SEGMENT_LENGTH):
    """把文字切成不超过 max_length 的有序片段

    每段尽量在截断点之前最近的句末标点处断开，其次是逗号，再其次是空白；
    都没有就直接在 max_length 处截断。只含空白的片段会被丢弃。
    """
    if max_length < 1:
        raise ValueError(f'max_length 必须大于 0: {max_length}')
    if len(text) <= max_length:
        return [text]

    segments = []
    remaining = text
    while len(remaining) > max_length:
        window = remaining[:max_length]
        cut = (
            _latest_boundary(window, SENTENCE_ENDINGS)
            or _latest_boundary(window, COMMA_MARKS)
            or _latest_whitespace(window)
            or max_length
        )
        segment, remaining = remaining[:cut], remaining[cut:]
        if segment.strip():
            segments.append(segment)
    if remaining.strip():
        segments.append(remaining)
    return segments


class AudioOutput:
    """用 pydub 解码并播放音频字节，播放结束才返回"""

    def play(self, audio, content_type='audio/mpeg'):
        media_type = (content_type or 'audio/mpeg').split(';')[0].strip().lower()
        audio_format = AUDIO_FORMATS.get(media_type, 'mp3')
        try:
            segment = AudioSegment.from_file(io.BytesIO(audio), format=audio_format)
            play(segment)
        except (CouldntDecodeError, OSError) as e:
            raise PlaybackError(str(e)) from e


class RemoteSpeechSynthesizer:
    """服务端 TTS 代理，每次请求不超过 max_length 个字"""

    def __init__(self, session, base_url, audio_output, timeout=10, max_length=MAX_SEGMENT_LENGTH, lang='ja'):
        self.session = session
        self.url = f"{base_url.rstrip('/')}/api/tts"
        self.audio_output = audio_output
        self.timeout = timeout
        self.max_length = max_length
        self.lang = lang

    def try_speak(self, text):
        text = text.strip()
        if not text:
            return True
        try:
            response = self.session.get(
                self.url,
                params={'text': text, 'lang': self.lang},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning('TTS 请求失败: %s', e)
            return False

        if not response.ok or not response.content:
            logger.warning('TTS 响应异常，状态: %s', response.status_code)
            return False

        try:
            self.audio_output.play(response.content, response.headers.get('Content-Type'))
        except PlaybackError as e:
            logger.warning('音频播放失败: %s', e)
            return False
        return True


def _voice_languages(voice):
    languages = []
    for lang in getattr(voice, 'languages', None) or []:
        if isinstance(lang, bytes):
            # espeak 的语言带一个长度前缀字节，例如 b'\x05ja'
            lang = lang.decode('utf-8', 'ignore')
        languages.append(''.join(ch for ch in str(lang) if ch.isprintable()).lower())
    return languages


def is_japanese_voice(voice):
    if any(lang.startswith('ja') for lang in _voice_languages(voice)):
        return True
    for value in (getattr(voice, 'id', ''), getattr(voice, 'name', '')):
        if value and JAPANESE_VOICE_ID.search(str(value).lower()):
            return True
    return False


def find_japanese_voice(voices):
    return next((voice for voice in voices if is_japanese_voice(voice)), None)


class VoiceEngine:
    """pyttsx3 引擎的包装：缓存语音列表，并在列表加载完成时通知监听者"""

    def __init__(self, engine):
        self._engine = engine
        self._voices = []
        self._listeners = []
        self.base_rate = engine.getProperty('rate') or 200

    @classmethod
    def create(cls, driver_name=None):
        try:
            engine = pyttsx3.init(driver_name)
        except (RuntimeError, OSError, ImportError) as e:
            logger.warning('此环境不支持本地语音合成: %s', e)
            return None
        return cls(engine)

    @property
    def voices(self):
        return list(self._voices)

    def on_voices_ready(self, callback):
        """注册一次性的回调，语音列表加载完成后调用"""
        self._listeners.append(callback)

    def load_voices(self):
        try:
            voices = self._engine.getProperty('voices') or []
        except (RuntimeError, OSError) as e:
            logger.warning('读取语音列表失败: %s', e)
            voices = []
        self._voices = list(voices)

        listeners, self._listeners = self._listeners, []
        for callback in listeners:
            callback(self.voices)
        return self.voices

    def cancel(self):
        self._engine.stop()

    def say(self, text, voice=None, rate=None):
        if voice is not None:
            self._engine.setProperty('voice', voice.id)
        if rate:
            self._engine.setProperty('rate', rate)
        self._engine.say(text)
        self._engine.runAndWait()


class DeviceSpeechSynthesizer:
    """本机语音合成，整段文字一次说完"""

    max_length = None

    def __init__(self, engine, rate_factor=0.9):
        self.engine = engine
        self.rate_factor = rate_factor

    def try_speak(self, text):
        if self.engine is None:
            logger.warning('此环境不支持本地语音合成')
            return False

        # 先停止当前的播放
        self.engine.cancel()

        if self.engine.voices:
            return self._utter(text)

        # 语音列表还没加载好，等加载完成再说
        results = []
        self.engine.on_voices_ready(lambda voices: results.append(self._utter(text)))
        self.engine.load_voices()
        return all(results)

    def _utter(self, text):
        voice = find_japanese_voice(self.engine.voices)
        if voice is None:
            logger.info('没有找到日文语音，使用默认语音')
        try:
            self.engine.say(text, voice=voice, rate=int(self.engine.base_rate * self.rate_factor))
        except (RuntimeError, OSError) as e:
            logger.error('本地语音合成失败: %s', e)
            return False
        return True


class SpeechPlayer:
    """按顺序尝试各个语音输出

    每一层按自己的 max_length 分段依次播放；某段失败时，这段和后面剩下的
    文字拼成一句交给下一层，这一层不再继续请求。
    """

    def __init__(self, converter, strategies):
        self.converter = converter
        self.strategies = list(strategies)

    def resolve_text(self, text, hiragana_hint=None):
        if hiragana_hint and hiragana_hint.strip():
            return hiragana_hint.strip()
        text = (text or '').strip()
        if has_kanji(text):
            readings = self.converter.convert(text)
            if readings.hiragana:
                return readings.hiragana
        return text

    def speak(self, text, hiragana_hint=None):
        """播放到最后一段才返回；不想阻塞的调用方请放到工作线程里执行"""
        try:
            effective = self.resolve_text(text, hiragana_hint)
            if not effective:
                return
            self._play(effective, self.strategies)
        except Exception as e:
            logger.error('播放发音失败: %s', e)

    def _play(self, text, strategies):
        if not strategies:
            logger.warning('所有语音输出都失败了: %s', text)
            return

        strategy, fallbacks = strategies[0], strategies[1:]
        if strategy.max_length:
            segments = split_segments(text, strategy.max_length)
        else:
            segments = [text]

        for index, segment in enumerate(segments):
            if self._try_speak(strategy, segment):
                continue
            remaining = ''.join(segments[index:])
            logger.warning('%s 失败，剩余 %d 段改用下一种方式播放',
                           type(strategy).__name__, len(segments) - index)
            self._play(remaining, fallbacks)
            return

    @staticmethod
    def _try_speak(strategy, segment):
        # 任何一层抛出的异常都当成这一段失败，交给下一层
        try:
            return strategy.try_speak(segment)
        except Exception as e:
            logger.error('%s 播放出错: %s', type(strategy).__name__, e)
            return False


def speak_word(player, word):
    """播放单字：日文 > 平假名 > 中文，已存的平假名作为读音提示"""
    text = word.get('japanese') or word.get('hiragana') or word.get('chinese')
    if text:
        player.speak(text, word.get('hiragana') or None)


def speak_example(player, word):
    text = word.get('exampleJapanese') or word.get('example') or word.get('chinese')
    if text:
        player.speak(text)
