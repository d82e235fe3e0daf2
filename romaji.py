# romaji.py
"""罗马拼音分词：在音节之间插入空格，方便阅读。

只是启发式规则（长音、促音等情况不保证准确），不要当成标准的音拍切分。
"""
import re

CONSONANTS = 'bcdfghjklmnpqrstvwxyz'

# 音节开头：sh/ch/ts，或单个子音（可带 y，如 ky、ry）
ONSET = r'(?:sh|ch|ts|[' + CONSONANTS + r']y?)'
# 拨音 n 后面的音节不能以 y 开头，否则会把 nya 里的 n 拆出来
ONSET_AFTER_N = r'(?:sh|ch|ts|[bcdfghjklmnpqrstvwxz]y?)'

# 拗音和 sh/ch/ts 开头的音节，后面紧跟 子音+母音
EXTENDED_SYLLABLE = re.compile(
    r'(tsu|chu|shu|sha|sho|shi|she|'
    r'kya|kyu|kyo|gya|gyu|gyo|nya|nyu|nyo|hya|hyu|hyo|'
    r'bya|byu|byo|pya|pyu|pyo|mya|myu|myo|rya|ryu|ryo)'
    r'(?=' + ONSET + r'[aeiou])',
    re.IGNORECASE,
)
# 母音 + (子音+母音)
VOWEL_BOUNDARY = re.compile(r'([aeiou])(?=' + ONSET + r'[aeiou])', re.IGNORECASE)
# 拨音 n + (子音+母音)
SYLLABIC_N = re.compile(r'(n)(?=' + ONSET_AFTER_N + r'[aeiou])', re.IGNORECASE)
WHITESPACE = re.compile(r'\s+')


def space_romaji(text):
    if not text or not text.strip():
        return ''

    # 已经有空格说明用户手动分过，保留原样
    if ' ' in text:
        return text

    spaced = EXTENDED_SYLLABLE.sub(r'\1 ', text)
    spaced = VOWEL_BOUNDARY.sub(r'\1 ', spaced)
    spaced = SYLLABIC_N.sub(r'\1 ', spaced)
    return WHITESPACE.sub(' ', spaced).strip()


def display_romaji(word):
    """卡片上显示的罗马拼音"""
    return space_romaji((word or {}).get('romaji') or '')
