# storage.py
"""单字资料的读写（/api/words），附带本地 JSON 缓存

读取失败时回退到本地缓存；新增/更新/删除失败则抛出 StoreError，
不会偷偷写进缓存。每次写入成功后更新缓存并通知订阅者。
"""
import json
import logging
import os

import requests

logger = logging.getLogger(__name__)

ALL_CATEGORIES = '全部'


class StoreError(Exception):
    """资料读写失败"""


class WordNotFoundError(StoreError):
    def __init__(self, word_id):
        super().__init__(f'单字不存在: {word_id}')
        self.word_id = word_id


def filter_words(words, category):
    if not category or category == ALL_CATEGORIES:
        return list(words)
    return [word for word in words if word.get('category') == category]


class WordStore:

    def __init__(self, session, base_url, cache_path=None, timeout=10):
        self.session = session
        self.url = f"{base_url.rstrip('/')}/api/words"
        self.cache_path = cache_path
        self.timeout = timeout
        self._subscribers = []

    # --- 订阅 ---

    def subscribe(self, callback):
        """资料变动时调用 callback(action, payload)，返回取消订阅的函数"""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _notify(self, action, payload):
        for callback in list(self._subscribers):
            try:
                callback(action, payload)
            except Exception as e:
                logger.error('订阅者处理 %s 出错: %s', action, e)

    # --- 本地缓存 ---

    def read_cache(self):
        if not self.cache_path or not os.path.exists(self.cache_path):
            return []
        try:
            with open(self.cache_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning('读取本地缓存失败: %s', e)
            return []
        return data if isinstance(data, list) else []

    def write_cache(self, words):
        if not self.cache_path:
            return
        try:
            directory = os.path.dirname(self.cache_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.cache_path, 'w', encoding='utf-8') as f:
                json.dump(words, f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.warning('写入本地缓存失败: %s', e)

    # --- 远端操作 ---

    def _request(self, method, url, action, **kwargs):
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error('%s失败: %s', action, e)
            raise StoreError(f'{action}失败') from e
        return response

    def _json(self, response, action):
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(f'{action}失败：回应不是 JSON') from e

    def list(self, category=None):
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            words = response.json()
            if not isinstance(words, list):
                raise ValueError('回应不是数组')
        except (requests.RequestException, ValueError) as e:
            logger.warning('读取单字失败，改用本地缓存: %s', e)
            words = self.read_cache()
        else:
            self.write_cache(words)
        return filter_words(words, category)

    def create(self, word):
        response = self._request('POST', self.url, '储存资料', json=word)
        if not response.ok:
            raise StoreError(f'储存资料失败: HTTP {response.status_code}')
        created = self._json(response, '储存资料')

        cached = [w for w in self.read_cache() if w.get('id') != created.get('id')]
        cached.append(created)
        self.write_cache(cached)
        self._notify('create', created)
        return created

    def update(self, word_id, word):
        response = self._request('PUT', f'{self.url}/{word_id}', '更新资料', json=word)
        if response.status_code == 404:
            raise WordNotFoundError(word_id)
        if not response.ok:
            raise StoreError(f'更新资料失败: HTTP {response.status_code}')
        updated = self._json(response, '更新资料')

        cached = self.read_cache()
        replaced = [updated if w.get('id') == word_id else w for w in cached]
        if not any(w.get('id') == word_id for w in cached):
            replaced.append(updated)
        self.write_cache(replaced)
        self._notify('update', updated)
        return updated

    def delete(self, word_id):
        response = self._request('DELETE', f'{self.url}/{word_id}', '删除资料')
        # 已经不存在也算删除成功
        if not response.ok and response.status_code != 404:
            raise StoreError(f'删除资料失败: HTTP {response.status_code}')

        self.write_cache([w for w in self.read_cache() if w.get('id') != word_id])
        self._notify('delete', {'id': word_id})
        return {'success': True}
