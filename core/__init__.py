"""
核心業務邏輯層

這個 package 包含所有有狀態的業務邏輯，包括：
- Room / RoomManager：房間狀態與生命週期（建立、座位、銷毀）
- 狀態機：Blackjack 一局的所有狀態轉換
- Shared State / Locks：共享欄位與協作欄位鎖、房間層級的序列化
- Engine：指令分派與事件產生
"""
