"""
前端资源构建工具

模块结构：
- config/     构建配置与项目描述加载
- models/     报告与任务运行记录
- toolchain/  编译/压缩/检查/优化工具封装
- pipeline/   任务编排、增量判断与监听
- stages/     各任务阶段
- cli         命令行入口
"""

__version__ = "0.1.0"
