"""
任务路由 - 汇率更新
"""
from flask import Blueprint, jsonify
from loguru import logger
from app.currency.rates import ExchangeRateService

bp = Blueprint('jobs', __name__, url_prefix='/api/jobs')


@bp.route('/update-exchange-rates', methods=['POST'])
def update_exchange_rates():
    """手动或定时触发汇率更新"""
    logger.info("通过 API 触发汇率更新")
    result = ExchangeRateService().run_update_job()

    if result['success']:
        return jsonify({
            'success': True,
            'message': 'Exchange rates updated successfully',
            'data': result
        }), 200

    if result['updatedRates'] > 0:
        # 部分成功
        return jsonify({
            'success': False,
            'message': 'Exchange rate update completed with errors',
            'data': result
        }), 207

    return jsonify({
        'success': False,
        'message': 'Exchange rate update failed',
        'data': result
    }), 500


@bp.route('/update-exchange-rates', methods=['GET'])
def exchange_rates_health():
    health = ExchangeRateService().health_check()
    return jsonify({
        'success': True,
        'message': 'Health check completed',
        'data': health
    }), 200 if health['healthy'] else 503
