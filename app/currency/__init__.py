"""
货币换算与汇率
"""
