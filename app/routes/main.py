"""
主路由 - 首页统计与搜索
"""
import re

from flask import Blueprint, jsonify, request
from app.models import TCGSet, Card
from app import db

bp = Blueprint('main', __name__)


@bp.route('/')
def index():
    """首页统计"""
    stats = {
        'set_count': TCGSet.query.count(),
        'card_count': Card.query.count()
    }

    recent_sets = [s.to_dict() for s in TCGSet.query.order_by(TCGSet.release_date.desc()).limit(6).all()]

    return jsonify({'success': True, 'data': {'stats': stats, 'recent_sets': recent_sets}})


@bp.route('/api/search')
def search():
    """
    搜索系列和卡片

    "charmander 4" 这种 "名称 编号" 的形式会拆开匹配
    """
    query = request.args.get('q', '').strip()
    limit = min(max(request.args.get('limit', 10, type=int), 1), 50)
    search_type = request.args.get('type', '').strip()  # sets / cards / 空为全部

    if not query:
        return jsonify({'results': [], 'total': 0})

    results = []

    if search_type in ('', 'sets'):
        like = f'%{query}%'
        sets = TCGSet.query.filter(
            db.or_(
                TCGSet.name.ilike(like),
                TCGSet.series.ilike(like),
                TCGSet.id.ilike(like)
            )
        ).order_by(TCGSet.release_date.desc()).limit(limit).all()
        results += [{'type': 'set', 'item': s.to_dict()} for s in sets]

    if search_type in ('', 'cards'):
        q = Card.query
        m = re.match(r'^(.+?)\s+(\d+)$', query)
        if m:
            q = q.filter(Card.name.ilike(f'%{m.group(1).strip()}%'), Card.number == m.group(2))
        else:
            like = f'%{query}%'
            q = q.filter(
                db.or_(
                    Card.name.ilike(like),
                    Card.number.ilike(like),
                    Card.artist.ilike(like)
                )
            )

        for card in q.order_by(Card.updated_at.desc()).limit(limit).all():
            item = card.to_dict()
            item['set'] = card.set.to_dict() if card.set else None
            results.append({'type': 'card', 'item': item})

    # 名称完全匹配优先，其次系列优先于卡片
    lowered = query.lower()
    results.sort(key=lambda r: (r['item']['name'].lower() != lowered, r['type'] != 'set'))

    return jsonify({
        'results': results[:limit],
        'total': len(results)
    })
