"""
tests/conftest.py
测试公用配置：Flask 测试客户端 + 内存数据库 + 假的 HTTP 回应
"""
import pytest
import os
from unittest.mock import MagicMock

import requests

# ========== 关键：在导入app之前设置环境变量 ==========
os.environ['DB_URL'] = 'sqlite:///:memory:'
os.environ['TESTING'] = 'true'


# ========== 导入app ==========
from app import app, db, Word


@pytest.fixture(scope='session', autouse=True)
def setup_test_environment():
    """
    设置测试环境 - 只在会话开始时执行一次
    """
    original_config = {
        'SQLALCHEMY_DATABASE_URI': app.config.get('SQLALCHEMY_DATABASE_URI'),
        'SQLALCHEMY_ENGINE_OPTIONS': app.config.get('SQLALCHEMY_ENGINE_OPTIONS', {}).copy(),
        'TESTING': app.config.get('TESTING', False)
    }

    app.config.update({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SQLALCHEMY_ENGINE_OPTIONS': {
            'connect_args': {'check_same_thread': False}
        }
    })

    with app.app_context():
        db.create_all()

    yield

    for key, value in original_config.items():
        if value is not None:
            app.config[key] = value


@pytest.fixture
def test_client():
    """
    测试客户端fixture - 每个测试函数一个干净的客户端和空表
    """
    with app.test_client() as client:
        with app.app_context():
            db.create_all()
            db.session.query(Word).delete()
            db.session.commit()

        yield client

        with app.app_context():
            db.session.query(Word).delete()
            db.session.commit()
            db.session.remove()


@pytest.fixture
def db_session():
    with app.app_context():
        yield db.session


@pytest.fixture
def sample_words(test_client):
    """
    预置测试单字资料
    """
    with app.app_context():
        words_data = [
            {'id': 'w1', 'chinese': '你好', 'japanese': 'こんにちは', 'example': '打招呼',
             'category': '問候', 'created_at': 1000},
            {'id': 'w2', 'chinese': '電車', 'japanese': '電車', 'hiragana': 'でんしゃ',
             'katakana': 'デンシャ', 'romaji': 'densha', 'example': '坐電車上班',
             'category': '交通', 'created_at': 2000},
            {'id': 'w3', 'chinese': '蘋果', 'japanese': 'りんご', 'example': '吃蘋果',
             'category': '食物', 'created_at': 3000},
        ]

        words = []
        for data in words_data:
            word = Word(**data)
            db.session.add(word)
            words.append(word)

        db.session.commit()
        yield [w.to_dict() for w in words]


@pytest.fixture
def make_response():
    """
    构造假的 requests 回应对象
    """
    def _make(status_code=200, json_data=None, content=b'', headers=None, json_error=False):
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 400
        response.content = content
        response.headers = headers or {}
        if json_error:
            response.json.side_effect = ValueError('not json')
        else:
            response.json.return_value = json_data
        if response.ok:
            response.raise_for_status.return_value = None
        else:
            response.raise_for_status.side_effect = requests.HTTPError(f'HTTP {status_code}')
        return response
    return _make


# ========== 注册pytest标记 ==========

def pytest_configure(config):
    config.addinivalue_line("markers", "unit: 标记为单元测试")
    config.addinivalue_line("markers", "integration: 标记为集成测试")
    config.addinivalue_line("markers", "e2e: 标记为端到端流程测试")
