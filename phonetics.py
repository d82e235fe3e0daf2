# phonetics.py
"""日文读音转换（平假名 / 片假名 / 罗马拼音）

含汉字时先请求服务端的词典转换（/api/convert），失败再用本地的
jaconv 规则转换；不含汉字时直接走本地规则。任何失败都只会得到
全空的结果，不会抛出异常。
"""
import logging
import re
from dataclasses import dataclass, asdict

import jaconv
import requests

logger = logging.getLogger(__name__)

KANJI_PATTERN = re.compile(r'[一-龯㐀-䶿]')
# jaconv 把长音符「ー」转成 "-"，改成重复前一个母音
LONG_VOWEL_MARK = re.compile(r'([aeiou])-')


def has_kanji(text):
    return bool(text) and KANJI_PATTERN.search(text) is not None


@dataclass(frozen=True)
class Readings:
    hiragana: str = ''
    katakana: str = ''
    romaji: str = ''

    def is_empty(self):
        return not (self.hiragana or self.katakana or self.romaji)

    def to_dict(self):
        return asdict(self)


EMPTY_READINGS = Readings()


class RemoteDictionaryConverter:
    """服务端词典转换，只处理含汉字的文字，只请求一次不重试"""

    def __init__(self, session, base_url, timeout=10):
        self.session = session
        self.url = f"{base_url.rstrip('/')}/api/convert"
        self.timeout = timeout

    def accepts(self, text):
        return has_kanji(text)

    def try_convert(self, text):
        try:
            response = self.session.post(self.url, json={'text': text}, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning('转换 API 错误: %s', e)
            return None

        if not response.ok:
            logger.warning('转换 API 失败，状态: %s', response.status_code)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning('转换 API 返回的不是 JSON')
            return None
        if not isinstance(data, dict):
            return None

        readings = Readings(
            hiragana=str(data.get('hiragana') or ''),
            katakana=str(data.get('katakana') or ''),
            romaji=str(data.get('romaji') or ''),
        )
        if readings.is_empty():
            logger.info('转换 API 没有给出读音: %s', text)
            return None
        return readings


class LocalTransliterator:
    """基于 jaconv 的假名/罗马字规则转换，无法识别汉字"""

    def accepts(self, text):
        return True

    def transliterate(self, text):
        hiragana = jaconv.kata2hira(jaconv.alphabet2kana(text))
        katakana = jaconv.hira2kata(hiragana)
        romaji = LONG_VOWEL_MARK.sub(r'\1\1', jaconv.kana2alphabet(hiragana))
        return hiragana, katakana, romaji

    def try_convert(self, text):
        try:
            hiragana, katakana, romaji = self.transliterate(text)
        except Exception as e:
            logger.error('jaconv 转换错误: %s', e)
            return EMPTY_READINGS

        # 三个结果都和输入一样，说明无法转换（例如中文、纯数字）
        if hiragana == text and katakana == text and romaji == text:
            return EMPTY_READINGS
        return Readings(hiragana=hiragana, katakana=katakana, romaji=romaji)


class PhoneticConverter:
    """按顺序尝试各个转换策略，第一个给出结果的为准"""

    def __init__(self, strategies):
        self.strategies = list(strategies)

    def convert(self, text):
        if not text or not text.strip():
            return EMPTY_READINGS

        text = text.strip()
        for strategy in self.strategies:
            if not strategy.accepts(text):
                continue
            try:
                readings = strategy.try_convert(text)
            except Exception as e:
                logger.error('%s 转换出错: %s', type(strategy).__name__, e)
                continue
            if readings is not None:
                return readings
        return EMPTY_READINGS


def build_converter(session, base_url, timeout=10):
    return PhoneticConverter([
        RemoteDictionaryConverter(session, base_url, timeout=timeout),
        LocalTransliterator(),
    ])
