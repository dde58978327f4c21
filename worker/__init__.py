"""Worker 모듈 - Dynamic Job 실행"""
