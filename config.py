# config.py
import os

# 默认分类（可通过环境变量 WORD_CATEGORIES 覆盖，逗号分隔）
DEFAULT_CATEGORIES = ['問候', '日常', '食物', '交通', '購物', '旅遊', '時間', '數字', '其他']


def _categories_from_env():
    raw = os.getenv('WORD_CATEGORIES', '')
    items = [c.strip() for c in raw.split(',') if c.strip()]
    return items or list(DEFAULT_CATEGORIES)


class Config:
    # 数据库连接，默认使用本地 SQLite 文件
    SQLALCHEMY_DATABASE_URI = os.getenv('DB_URL', 'sqlite:///vocab_cards.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 客户端访问的 API 地址
    API_BASE_URL = os.getenv('API_BASE_URL', 'http://127.0.0.1:5000')
    REQUEST_TIMEOUT = float(os.getenv('REQUEST_TIMEOUT', '10'))

    # Google 翻译 TTS 接口，语言固定为日文
    TTS_ENDPOINT = os.getenv('TTS_ENDPOINT', 'https://translate.google.com/translate_tts')
    TTS_LANG = 'ja'
    # 至少 1 个字，否则无法分段
    TTS_MAX_SEGMENT_LENGTH = max(1, int(os.getenv('TTS_MAX_SEGMENT_LENGTH', '200')))

    # 本地语音合成的语速倍率（稍慢，方便学习）
    SPEECH_RATE = float(os.getenv('SPEECH_RATE', '0.9'))

    # 离线读取用的本地缓存
    WORD_CACHE_PATH = os.getenv('WORD_CACHE_PATH', os.path.join(os.path.expanduser('~'), '.vocab_cards', 'words.json'))

    CATEGORIES = _categories_from_env()

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
