"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- RngService：加權 / 均勻亂數
- DeckService / HandService：牌組與 Blackjack 點數
- PayoffService：結算（餘額帳本或獎勵池）
- Wheel / TaiXiu / Roulette：mini-game 結果判定
- NamingService：房間代碼與房間 ID
"""
