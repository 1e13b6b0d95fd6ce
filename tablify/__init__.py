"""
Tablify 表格结构 - 核心模块

模块结构：
- config/          运行期配置加载
- models/          描述符与位置模型
- core/            二维有序实体模型（轴/行/列/单元格/表格）
- interfaces.py    渲染层接口与异常定义
- logging_config.py 日志配置
"""

__version__ = "0.1.0"
