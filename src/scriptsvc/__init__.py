"""scriptsvc: Python スクリプトを長時間稼働サービスとして実行する。"""
