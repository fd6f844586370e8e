# -*- coding: utf-8 -*-
"""
结果缓存
以输入数据和参数的 SHA-256 为键，LRU 淘汰 + TTL 过期，线程安全
"""

import hashlib
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

import numpy as np

from .. import config
from ..data.models import Series
from ..exceptions import ValidationError


def make_key(kind: str, *parts: Any) -> str:
    """
    计算缓存键

    参数:
        kind: 结果类型
        parts: 输入（Series、numpy 数组按字节计算，其余按 repr 计算）

    返回:
        十六进制 SHA-256 字符串
    """
    digest = hashlib.sha256(kind.encode('utf-8'))
    for part in parts:
        digest.update(b'|')
        if isinstance(part, Series):
            digest.update(part.positions.tobytes())
            digest.update(part.values.tobytes())
            digest.update(repr(part.channel).encode('utf-8'))
        elif isinstance(part, np.ndarray):
            digest.update(str((part.shape, part.dtype.str)).encode('utf-8'))
            digest.update(np.ascontiguousarray(part).tobytes())
        else:
            digest.update(repr(part).encode('utf-8'))
    return digest.hexdigest()


class ResultCache:
    """
    LRU + TTL 缓存

    get/set 在锁内完成，并发读写不会读到不完整的条目；
    同一键的并发未命中可能各自计算一次
    """

    def __init__(self,
                 max_entries: int = config.CACHE_MAX_ENTRIES,
                 ttl_seconds: float = config.CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        """
        初始化缓存

        参数:
            max_entries: 最大条目数
            ttl_seconds: 有效期 (s)
            clock: 时钟函数（测试时可替换）
        """
        if max_entries < 1:
            raise ValidationError(f"最大条目数必须为正: {max_entries}")
        if ttl_seconds <= 0:
            raise ValidationError(f"有效期必须为正: {ttl_seconds}")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: 'OrderedDict[str, tuple]' = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """获取缓存值，未命中或已过期返回 None"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def set(self, key: str, value: Any) -> None:
        """写入缓存，超出容量时淘汰最久未使用的条目"""
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def get_or_compute(self, key: str, compute: Callable[[], Any]) -> Any:
        """命中时返回缓存值，否则计算并写入（计算在锁外进行）"""
        value = self.get(key)
        if value is None:
            value = compute()
            self.set(key, value)
        return value

    def clear(self) -> None:
        """清空缓存"""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._clock() < entry[0]

    @property
    def stats(self) -> dict:
        """获取统计信息字典"""
        with self._lock:
            return {
                'hits': self.hits,
                'misses': self.misses,
                'size': len(self._entries),
                'max_entries': self.max_entries
            }
