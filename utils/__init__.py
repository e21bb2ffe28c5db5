"""工具模块

包含异常、响应格式、ID生成、认证和数据库方言工具
"""
