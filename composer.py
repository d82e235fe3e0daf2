# composer.py
"""把表单输入组成一笔单字资料

流程：先验证必填字段，再转换日文读音，最后交给 WordStore 新增或更新。
读音转换失败只会让读音字段为空，不会影响储存。
"""
import logging

from config import Config
from phonetics import has_kanji

logger = logging.getLogger(__name__)

FORM_FIELDS = (
    'chinese', 'japaneseKanji', 'japanese', 'romaji',
    'example', 'exampleJapanese', 'exampleRomaji', 'exampleNote', 'category',
)


class WordValidationError(ValueError):
    """必填字段缺失，errors 为 {字段: 原因}"""

    def __init__(self, errors):
        super().__init__('; '.join(f'{k}: {v}' for k, v in errors.items()))
        self.errors = errors


def _clean(form):
    return {field: str(form.get(field) or '').strip() for field in FORM_FIELDS}


def validate_word_input(form, categories=None):
    categories = Config.CATEGORIES if categories is None else categories
    data = _clean(form)
    errors = {}
    if not data['chinese']:
        errors['chinese'] = '请输入中文翻译'
    if not data['example']:
        errors['example'] = '请输入例句'
    if not data['category']:
        errors['category'] = '请选择分类'
    elif data['category'] not in categories:
        errors['category'] = f'未知分类: {data["category"]}'
    return errors


def _japanese_fields(data, converter):
    # 日文汉字优先，其次日文，都没有就拿中文来转换
    source = data['japaneseKanji'] or data['japanese'] or data['chinese']
    readings = converter.convert(source)
    if readings.is_empty():
        logger.info('无法取得读音，只保留原文: %s', source)
    return {
        'japanese': source,
        'hiragana': readings.hiragana,
        'katakana': readings.katakana,
        'romaji': data['romaji'] or readings.romaji,
    }


def _example_fields(data, converter):
    fields = {
        'example': data['example'],
        'exampleJapanese': data['exampleJapanese'],
        'exampleRomaji': data['exampleRomaji'],
        'exampleNote': data['exampleNote'],
    }

    # 用户输入了例句日文：以用户输入为主，只补上罗马拼音
    if data['exampleJapanese']:
        if not fields['exampleRomaji']:
            fields['exampleRomaji'] = converter.convert(data['exampleJapanese']).romaji
        return fields

    readings = converter.convert(data['example'])
    if readings.is_empty():
        fields['exampleJapanese'] = data['example']
    else:
        fields['exampleJapanese'] = readings.hiragana or readings.katakana or data['example']
        fields['exampleRomaji'] = fields['exampleRomaji'] or readings.romaji
    return fields


def compose_word(form, converter, categories=None):
    """验证并组成单字资料（不含 id / createdAt）"""
    errors = validate_word_input(form, categories)
    if errors:
        raise WordValidationError(errors)

    data = _clean(form)
    word = {'chinese': data['chinese'], 'category': data['category']}
    word.update(_japanese_fields(data, converter))
    word.update(_example_fields(data, converter))
    return word


def submit_word(store, converter, form, editing_word=None, categories=None):
    """新增，或在编辑模式下整条替换原有资料"""
    word = compose_word(form, converter, categories)
    if editing_word is None:
        return store.create(word)

    word['id'] = editing_word['id']
    word['createdAt'] = editing_word.get('createdAt')
    return store.update(editing_word['id'], word)


def form_from_word(word):
    """编辑时把已存资料还原成表单：含汉字的日文放进 japaneseKanji"""
    japanese = word.get('japanese') or ''
    kanji = has_kanji(japanese)
    form = {field: word.get(field) or '' for field in FORM_FIELDS}
    form['japaneseKanji'] = japanese if kanji else ''
    form['japanese'] = '' if kanji else japanese
    return form
