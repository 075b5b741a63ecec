"""
Web界面模块

基于 Streamlit 的扫描界面:
- 实时摄像头预览
- 状态提示
- 二维码与用户信息展示
"""

from facescan.ui.app import main

__all__ = ["main"]
