"""
傳輸層

- rooms：REST（房間代碼、房間查詢）
- websocket：房間連線與事件扇出
"""
