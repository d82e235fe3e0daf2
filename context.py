# context.py
"""客户端运行环境：进程启动时建立一次，再传给需要的组件"""
import logging

import requests

from config import Config
from phonetics import build_converter
from speech import (
    AudioOutput,
    DeviceSpeechSynthesizer,
    RemoteSpeechSynthesizer,
    SpeechPlayer,
    VoiceEngine,
)
from storage import WordStore

logger = logging.getLogger(__name__)


class ClientContext:

    def __init__(self, session, converter, player, store, voice_engine=None):
        self.session = session
        self.converter = converter
        self.player = player
        self.store = store
        self.voice_engine = voice_engine
        self.ready = False

    @classmethod
    def from_config(cls, config=Config, session=None, voice_engine=None, audio_output=None):
        session = session or requests.Session()
        if voice_engine is None:
            voice_engine = VoiceEngine.create()
        converter = build_converter(session, config.API_BASE_URL, timeout=config.REQUEST_TIMEOUT)
        player = SpeechPlayer(converter, [
            RemoteSpeechSynthesizer(
                session,
                config.API_BASE_URL,
                audio_output or AudioOutput(),
                timeout=config.REQUEST_TIMEOUT,
                max_length=config.TTS_MAX_SEGMENT_LENGTH,
                lang=config.TTS_LANG,
            ),
            DeviceSpeechSynthesizer(voice_engine, rate_factor=config.SPEECH_RATE),
        ])
        store = WordStore(
            session,
            config.API_BASE_URL,
            cache_path=config.WORD_CACHE_PATH,
            timeout=config.REQUEST_TIMEOUT,
        )
        return cls(session, converter, player, store, voice_engine=voice_engine)

    def init(self):
        """加载本机语音列表；没有本机语音时也算就绪，只是无法回退"""
        if self.voice_engine is not None:
            voices = self.voice_engine.load_voices()
            logger.info('本机语音 %d 个', len(voices))
        self.ready = True
        return self

    def close(self):
        self.session.close()
        self.ready = False
