# -*- coding: utf-8 -*-
# monobot/app/services/report_service.py
# =============================================================================
# Назначение кода:
#   Report Engine одного счёта:
#   • кэш загруженной выписки по ключу (период, чат, пользователь, клиент);
#   • нарезка кэшированного списка на страницы фиксированного размера;
#   • итоги (потрачено / оборот / кешбек) по ВСЕМУ набору;
#   • компактный переключатель страниц (≤ 5 кнопок, многоточечная схема).
#
# Канон / инварианты:
#   • Номер страницы НЕ входит в ключ кэша: листание не вызывает перезапрос.
#   • Итоги не зависят от текущей страницы.
#   • reset_cache() удаляет только записи «текущих» периодов (относительные
#     метки + текущий месяц); прошлые месяцы не меняются и остаются.
#   • Кэш читают апдейты бота и сбрасывает обработчик вебхука: доступ к
#     словарю только под threading.Lock.
#   • Записи не устаревают по времени — их сбрасывает поток уведомлений.
#   • Выписка, запрошенная до reset_cache() своего периода, в кэш не
#     попадает: set_cache_data() сверяет поколение, прочитанное до запроса.
#
# Запреты:
#   • Нет сетевых вызовов и форматирования текста сообщений.
# =============================================================================

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from monobot.app.core.config_core import get_settings
from monobot.app.core.logging_core import get_logger
from monobot.app.schemas.monobank_schemas import StatementItem
from monobot.app.services.period_service import current_period_labels

logger = get_logger(__name__)
settings = get_settings()

_KEY_SEPARATOR = "-report-"
_SELECTOR_WINDOW = 4


def period_token(period: str) -> str:
    """Метка периода в виде без пробелов: «Last week» → «Last_week»."""
    return period.strip().replace(" ", "_")


def period_from_token(token: str) -> str:
    return token.replace("_", " ")


@dataclass(slots=True)
class ReportPage:
    """Одна страница отчёта и итоги по всему периоду."""

    items: List[StatementItem]
    page: int
    total_pages: int
    total_items: int
    spent_total: int = 0
    amount_total: int = 0
    cashback_total: int = 0


@dataclass(slots=True, frozen=True)
class PageButton:
    """Кнопка переключателя: подпись и номер страницы, на который она ведёт."""

    text: str
    page: int


def total_pages_for(total_items: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError("page_size must be > 0")
    return -(-total_items // page_size)


def build_page(items: Sequence[StatementItem], page: int, page_size: int) -> ReportPage:
    """
    Окно page из items.

    Страница зажимается в [1, total_pages]; пустой список даёт пустую
    страницу 1 из 0. Итоги считаются по всем items.
    """
    total_items = len(items)
    total_pages = total_pages_for(total_items, page_size)
    page = min(max(page, 1), max(total_pages, 1))

    spent = 0
    gross = 0
    cashback = 0
    for item in items:
        if item.amount < 0:
            spent += -item.amount
        gross += abs(item.amount)
        cashback += item.cashback_amount

    offset = (page - 1) * page_size
    return ReportPage(
        items=list(items[offset : offset + page_size]),
        page=page,
        total_pages=total_pages,
        total_items=total_items,
        spent_total=spent,
        amount_total=gross,
        cashback_total=cashback,
    )


def build_page_selector(total_items: int, current_page: int, page_size: int) -> List[PageButton]:
    """
    Кнопки переключателя страниц.

    «·n·» — текущая страница; «‹n» — начало окна после прокрутки;
    «n›» — конец окна, если страниц больше четырёх; ««1» — прыжок на первую;
    «n»» — прыжок на последнюю, пока окно её не достигло. Одна страница —
    пустой список.
    """
    total_pages = total_pages_for(total_items, page_size)
    if total_pages <= 1:
        return []
    page = min(max(current_page, 1), total_pages)

    buttons: List[PageButton] = []
    start = 1
    end = min(_SELECTOR_WINDOW, total_pages)
    if page > 3:
        if page == total_pages:
            start, end = page - 3, page
        elif page > total_pages - 2:
            start, end = page - 2, page
        else:
            start, end = page - 1, page + 1
    scrolled = start > 1
    if scrolled:
        buttons.append(PageButton("«1", 1))

    for i in range(start, end + 1):
        if i == page:
            buttons.append(PageButton(f"·{i}·", i))
        elif scrolled and i == start:
            buttons.append(PageButton(f"‹{i}", i))
        elif i == end and total_pages > _SELECTOR_WINDOW:
            buttons.append(PageButton(f"{i}›", i))
        else:
            buttons.append(PageButton(str(i), i))

    if page != total_pages and total_pages > _SELECTOR_WINDOW:
        if page > total_pages - 2:
            buttons.append(PageButton(str(total_pages), total_pages))
        else:
            buttons.append(PageButton(f"{total_pages}»", total_pages))
    return buttons


class ReportEngine:
    """Кэш и пагинация отчётов одного счёта."""

    def __init__(self, account_id: str, *, page_size: Optional[int] = None) -> None:
        self.account_id = account_id
        self.page_size = int(page_size or settings.REPORT_PAGE_SIZE)
        self._cache: Dict[str, List[StatementItem]] = {}
        self._generation = 0
        self._reset_generation: Dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        """Номер последнего reset_cache(); читается до запроса выписки."""
        with self._lock:
            return self._generation

    @staticmethod
    def cache_key(period: str, chat_id: int, user_id: int, client_id: int) -> str:
        return f"{period_token(period)}{_KEY_SEPARATOR}{chat_id}-{user_id}-{client_id}"

    def is_cached(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def get_cache_data(self, key: str) -> Optional[List[StatementItem]]:
        with self._lock:
            items = self._cache.get(key)
            return list(items) if items is not None else None

    def set_cache_data(
        self,
        key: str,
        items: Sequence[StatementItem],
        generation: Optional[int] = None,
    ) -> bool:
        """
        Сохранить выписку. generation — значение self.generation до запроса:
        если период ключа с тех пор сбрасывался, данные устарели и не
        сохраняются (возвращается False).
        """
        token = key.split(_KEY_SEPARATOR, 1)[0]
        with self._lock:
            if generation is not None and self._reset_generation.get(token, 0) > generation:
                stored = False
            else:
                self._cache[key] = list(items)
                stored = True
        if not stored:
            logger.debug("[Report] stale statement not cached", extra={"account": self.account_id, "key": key})
        return stored

    def reset_cache(self, now: Optional[datetime] = None) -> int:
        """Удалить записи текущих периодов. Возвращает число удалённых."""
        current = {period_token(label) for label in current_period_labels(now)}
        with self._lock:
            self._generation += 1
            for token in current:
                self._reset_generation[token] = self._generation
            stale = [key for key in self._cache if key.split(_KEY_SEPARATOR, 1)[0] in current]
            for key in stale:
                del self._cache[key]
        if stale:
            logger.debug(
                "[Report] cache reset",
                extra={"account": self.account_id, "dropped": len(stale)},
            )
        return len(stale)

    def build_page(self, items: Sequence[StatementItem], page: int) -> ReportPage:
        return build_page(items, page, self.page_size)

    def build_page_selector(self, total_items: int, current_page: int) -> List[PageButton]:
        return build_page_selector(total_items, current_page, self.page_size)

    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)


__all__ = [
    "ReportPage",
    "PageButton",
    "ReportEngine",
    "build_page",
    "build_page_selector",
    "period_token",
    "period_from_token",
    "total_pages_for",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Первая кнопка отчёта загружает выписку один раз и кладёт её в кэш;
#     дальше листание страниц работает только с кэшем.
#   • Новая операция по счёту (вебхук) сбрасывает кэш «Today», «This week» и
#     т.п., чтобы следующий отчёт её увидел. «November» прошлого года
#     остаётся в кэше — он уже не изменится.
# =============================================================================
