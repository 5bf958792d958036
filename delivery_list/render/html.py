import re
from html import escape
from typing import Dict

from delivery_list.schemas import DeliveryCard
from delivery_list.utils.timestamps import NO_START_TIME
from delivery_list.view import ListSnapshot

LAZY_HEIGHT_PX = 200
LAZY_OFFSET_PX = 100

_PLACEHOLDER_RE = re.compile(r"__([A-Z_]+?)__")

PAGE_SHELL = r"""<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width, initial-scale=1" />
<title>List of Deliveries</title>
<style>
__CSS_BLOCK__
</style>
</head>
<body>
<main class="container">
  <h1 class="my-4">List of Deliveries</h1>
  <form class="search-row" action="/" method="get" role="search">
    <input id="search" class="form-control" type="text" name="search"
           placeholder="Search for deliveries..." value="__SEARCH__" autocomplete="off" />
    <span role="img" aria-label="filter" class="search-icon">&#128269;</span>
  </form>
  <div id="delivery-list">
__LIST_MARKUP__
  </div>
  <div class="delivery-list-end"></div>
</main>
<script>
__JS_BLOCK__
</script>
</body>
</html>
"""

CSS_BLOCK = r"""
body { font-family: system-ui, sans-serif; margin: 0; background: #f6f7f9; }
.container { max-width: 960px; margin: 0 auto; padding: 0 16px; }
.search-row { display: flex; align-items: center; gap: 12px; margin-bottom: 24px; }
.form-control { flex: 1; padding: 8px 12px; font-size: 1rem; border: 1px solid #ced4da; border-radius: 4px; }
.search-icon { font-size: 1.5rem; cursor: pointer; }
.lazy-slot { margin-bottom: 16px; }
.lazy-placeholder { display: flex; justify-content: center; align-items: center; }
.spinner-icon { width: 2rem; height: 2rem; border: 3px solid #007bff; border-right-color: transparent;
                border-radius: 50%; animation: spin 1s linear infinite; }
@keyframes spin { to { transform: rotate(360deg); } }
.card-link-wrapper { color: inherit; text-decoration: none; display: block; }
.task-card { position: relative; overflow: hidden; background: #fff; border-radius: 6px; padding: 16px;
             box-shadow: 0 1px 3px rgba(0, 0, 0, .12); }
.shaded-bg { position: absolute; top: 0; left: 0; bottom: 0; background: rgba(40, 167, 69, .08); }
.card-body { position: relative; display: flex; justify-content: space-between; flex-wrap: wrap; }
.planned { font-weight: bold; font-size: 1.5rem; }
.progress { height: 8px; background: #e9ecef; border-radius: 4px; overflow: hidden; margin: 8px 0; min-width: 240px; }
.progress-bar { height: 100%; }
.bg-success { background: #28a745; }
.bg-warning { background: #ffc107; }
.bg-danger { background: #dc3545; }
.text-muted { color: #6c757d; margin: 0 0 4px; }
.client { width: 100%; margin: 12px 0 0; }
.delivery-list-end { height: 1px; margin-bottom: 20px; }
"""

JS_BLOCK = r"""
(function () {
  var OFFSET = __LAZY_OFFSET__;

  function mount(slot) {
    var tpl = slot.querySelector("template");
    if (!tpl) return;
    slot.replaceChildren(tpl.content.cloneNode(true));
  }

  function observe(root) {
    var slots = root.querySelectorAll(".lazy-slot");
    if (!("IntersectionObserver" in window)) {
      slots.forEach(mount);
      return;
    }
    var io = new IntersectionObserver(function (entries) {
      entries.forEach(function (entry) {
        if (entry.isIntersecting) {
          io.unobserve(entry.target);
          mount(entry.target);
        }
      });
    }, { rootMargin: OFFSET + "px 0px" });
    slots.forEach(function (slot) { io.observe(slot); });
  }

  var list = document.getElementById("delivery-list");
  var input = document.getElementById("search");
  var seq = 0;

  input.form.addEventListener("submit", function (ev) { ev.preventDefault(); });
  input.addEventListener("input", function () {
    var mine = ++seq;
    fetch("/cards?search=" + encodeURIComponent(input.value))
      .then(function (res) {
        if (!res.ok) throw new Error("HTTP " + res.status);
        return res.text();
      })
      .then(function (markup) {
        if (mine !== seq) return;
        list.innerHTML = markup;
        observe(list);
      })
      .catch(function (err) { console.error("Error refreshing deliveries:", err); });
  });

  observe(list);
})();
"""

CARD_MARKUP = r"""<a href="__HREF__" class="card-link-wrapper">
  <div class="task-card">
    <div class="shaded-bg" style="width: __PROGRESS__%"></div>
    <div class="card-body">
      <div>
        <div class="planned">&#10004; __PLANNED__ of __TOTAL__ Planned</div>
        <div class="progress" role="progressbar" aria-valuenow="__PROGRESS__" aria-valuemin="0" aria-valuemax="100">
          <div class="progress-bar bg-__VARIANT__" style="width: __PROGRESS__%"></div>
        </div>
      </div>
      <div class="text-right">
        <p class="text-muted">&#128339; __INITIATED__</p>
        <p class="text-muted">&#9873; __DEADLINE__</p>
      </div>
      <h5 class="client">__CLIENT__</h5>
    </div>
  </div>
</a>"""

SLOT_MARKUP = r"""<div class="lazy-slot" data-key="__KEY__" data-severity="__SEVERITY__">
  <div class="lazy-placeholder" style="height: __HEIGHT__px"><span class="spinner-icon"></span></div>
  <template>
__CARD__
  </template>
</div>"""


def _fill(template: str, values: Dict[str, str]) -> str:
    """Substitutes __NAME__ placeholders in one pass, so inserted values are never rescanned."""
    return _PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def _number(value: float) -> str:
    """Formats a percentage without a trailing '.0' for whole numbers."""
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def render_card(card: DeliveryCard) -> str:
    return _fill(CARD_MARKUP, {
        "HREF": escape(card.href),
        "PROGRESS": _number(card.progress),
        "VARIANT": escape(card.variant),
        "PLANNED": str(card.tasksPlanned),
        "TOTAL": str(card.tasksTotal),
        "INITIATED": escape(card.initiated or NO_START_TIME),
        "DEADLINE": escape(card.deadline),
        "CLIENT": escape(card.client),
    })


def render_lazy_slot(card: DeliveryCard) -> str:
    """Wraps a card in a placeholder slot that is swapped for the card once it nears the viewport."""
    return _fill(SLOT_MARKUP, {
        "KEY": escape(card.delCode),
        "SEVERITY": card.severity,
        "HEIGHT": str(LAZY_HEIGHT_PX),
        "CARD": render_card(card),
    })


def render_list(snapshot: ListSnapshot) -> str:
    """Count label followed by the visible cards; also served on its own for in-page search."""
    parts = [f'<p class="count-label">{escape(snapshot.label)}</p>', '<div class="delivery-cards">']
    parts.extend(render_lazy_slot(card) for card in snapshot.cards)
    parts.append('</div>')
    return "\n".join(parts)


def render_page(snapshot: ListSnapshot) -> str:
    return _fill(PAGE_SHELL, {
        "CSS_BLOCK": CSS_BLOCK,
        "JS_BLOCK": _fill(JS_BLOCK, {"LAZY_OFFSET": str(LAZY_OFFSET_PX)}),
        "SEARCH": escape(snapshot.search),
        "LIST_MARKUP": render_list(snapshot),
    })
