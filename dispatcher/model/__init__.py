"""Dispatcher 모델"""
from dispatcher.model.dispatcher import DispatcherConfig

__all__ = ["DispatcherConfig"]
