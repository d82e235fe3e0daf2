# app.py
from flask import Flask, request, jsonify, Response
from config import Config
from models import db, Word, validate_word_payload, now_ms, new_word_id
from services import KanjiReader, fetch_tts_audio, TtsUpstreamError
from logging_config import setup_logging
import os
import sys
import requests

# 判断是否在测试环境中
TESTING = 'pytest' in sys.modules or 'unittest' in sys.modules or os.getenv('TESTING') == 'true'

# "全部" 表示不按分类过滤
ALL_CATEGORIES = '全部'

app = Flask(__name__)

if TESTING:
    # 测试环境：使用SQLite内存库
    app.config.update({
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TESTING': True,
        'SQLALCHEMY_ENGINE_OPTIONS': {}
    })
    app.config['CATEGORIES'] = Config.CATEGORIES
else:
    app.config.from_object(Config)

db.init_app(app)

# 词典在启动时加载
kanji_reader = KanjiReader(app)


@app.after_request
def add_cors_headers(response):
    response.headers['Access-Control-Allow-Origin'] = '*'
    return response


def _categories():
    return app.config.get('CATEGORIES') or Config.CATEGORIES


def _validation_failed(errors):
    return jsonify({'error': '资料验证失败', 'fields': errors}), 400


# --- 单字 CRUD ---

@app.route('/api/categories', methods=['GET'])
def get_categories():
    return jsonify(list(_categories()))


@app.route('/api/words', methods=['GET'])
def get_words():
    query = Word.query
    category = request.args.get('category', '').strip()
    if category and category != ALL_CATEGORIES:
        query = query.filter_by(category=category)
    words = query.order_by(Word.created_at, Word.id).all()
    return jsonify([w.to_dict() for w in words])


@app.route('/api/words', methods=['POST'])
def create_word():
    data = request.get_json(silent=True)
    errors = validate_word_payload(data, _categories())
    if errors:
        return _validation_failed(errors)

    word_id = str(data.get('id') or '').strip() or new_word_id()
    if db.session.get(Word, word_id) is not None:
        return jsonify({'error': f'单字 {word_id} 已存在'}), 409

    word = Word()
    word.id = word_id
    word.replace_fields(data)
    word.created_at = data.get('createdAt') or now_ms()
    db.session.add(word)
    db.session.commit()
    app.logger.info('新增单字 %s (%s)', word.id, word.chinese)
    return jsonify(word.to_dict()), 201


@app.route('/api/words/<word_id>', methods=['PUT'])
def update_word(word_id):
    word = db.session.get(Word, word_id)
    if word is None:
        return jsonify({'error': 'Word not found'}), 404

    data = request.get_json(silent=True)
    errors = validate_word_payload(data, _categories())
    if errors:
        return _validation_failed(errors)

    # id 和 createdAt 保持不变，其余字段整条替换
    word.replace_fields(data)
    db.session.commit()
    app.logger.info('更新单字 %s', word.id)
    return jsonify(word.to_dict()), 200


@app.route('/api/words/<word_id>', methods=['DELETE'])
def delete_word(word_id):
    # 删除不存在的单字也视为成功
    word = db.session.get(Word, word_id)
    if word is not None:
        db.session.delete(word)
        db.session.commit()
        app.logger.info('删除单字 %s', word_id)
    return jsonify({'success': True}), 200


# --- 日文转换 ---

@app.route('/api/convert', methods=['POST'])
def convert_text():
    data = request.get_json(silent=True) or {}
    text = data.get('text')
    if not isinstance(text, str) or not text.strip():
        return jsonify({'error': 'Text is required'}), 400

    app.logger.info('收到转换请求，文字: %s', text)
    return jsonify(kanji_reader.convert(text))


# --- TTS 代理 ---

@app.route('/api/tts', methods=['GET', 'OPTIONS'])
def tts_proxy():
    # CORS 预检
    if request.method == 'OPTIONS':
        response = Response(status=200)
        response.headers['Access-Control-Allow-Methods'] = 'GET, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
        return response

    text = request.args.get('text', '')
    if not text.strip():
        return jsonify({'error': 'Text parameter is required'}), 400

    try:
        audio, content_type = fetch_tts_audio(text)
    except TtsUpstreamError as e:
        return jsonify({'error': 'TTS request failed'}), e.status_code
    except requests.RequestException as e:
        app.logger.error('TTS 请求失败: %s', e)
        return jsonify({'error': 'TTS request failed'}), 502

    response = Response(audio, mimetype=content_type)
    response.headers['Cache-Control'] = 'no-cache'
    response.headers['Accept-Ranges'] = 'bytes'
    return response


if __name__ == '__main__':
    setup_logging(Config.LOG_LEVEL)
    with app.app_context():
        db.create_all()
    app.run(host='0.0.0.0', port=5000, debug=True)
