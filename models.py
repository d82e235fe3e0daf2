# models.py
import time
import uuid

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# 必填字段
REQUIRED_FIELDS = ('chinese', 'example', 'category')

# JSON 字段名 -> 数据库列名（除 id / createdAt 外都可被整条替换）
TEXT_FIELDS = {
    'chinese': 'chinese',
    'japanese': 'japanese',
    'hiragana': 'hiragana',
    'katakana': 'katakana',
    'romaji': 'romaji',
    'example': 'example',
    'exampleJapanese': 'example_japanese',
    'exampleRomaji': 'example_romaji',
    'exampleNote': 'example_note',
    'category': 'category',
}


def now_ms():
    return int(time.time() * 1000)


def new_word_id():
    return uuid.uuid4().hex


class Word(db.Model):
    __tablename__ = 'words'
    id = db.Column(db.String(64), primary_key=True, default=new_word_id)
    chinese = db.Column(db.String(255), nullable=False)
    japanese = db.Column(db.String(255), default='')
    hiragana = db.Column(db.String(255), default='')
    katakana = db.Column(db.String(255), default='')
    romaji = db.Column(db.String(255), default='')
    example = db.Column(db.Text, nullable=False)
    example_japanese = db.Column(db.Text, default='')
    example_romaji = db.Column(db.Text, default='')
    example_note = db.Column(db.Text, default='')
    category = db.Column(db.String(50), nullable=False)
    # 毫秒时间戳，创建后不可修改
    created_at = db.Column(db.BigInteger, nullable=False, default=now_ms)

    def replace_fields(self, data):
        """整条替换：请求里没有的字段一律置空，不做合并"""
        for key, column in TEXT_FIELDS.items():
            value = data.get(key)
            setattr(self, column, str(value).strip() if value is not None else '')

    def to_dict(self):
        return {
            'id': self.id,
            'chinese': self.chinese,
            'japanese': self.japanese or '',
            'hiragana': self.hiragana or '',
            'katakana': self.katakana or '',
            'romaji': self.romaji or '',
            'example': self.example,
            'exampleJapanese': self.example_japanese or '',
            'exampleRomaji': self.example_romaji or '',
            'exampleNote': self.example_note or '',
            'category': self.category,
            'createdAt': self.created_at,
        }


def validate_word_payload(data, categories):
    """返回 {字段: 原因}，为空表示校验通过"""
    errors = {}
    if not isinstance(data, dict):
        return {'_': '请求体必须是 JSON 对象'}
    if not str(data.get('chinese') or '').strip():
        errors['chinese'] = '请输入中文翻译'
    if not str(data.get('example') or '').strip():
        errors['example'] = '请输入例句'
    category = str(data.get('category') or '').strip()
    if not category:
        errors['category'] = '请选择分类'
    elif category not in categories:
        errors['category'] = f'未知分类: {category}'
    return errors
