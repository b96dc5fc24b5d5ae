"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理
"""


class RaffleException(Exception):
    """所有 Raffle 異常的基類"""
    pass


# ============ Raffle 相關異常 ============

class RaffleNotFound(RaffleException):
    """Raffle 不存在"""
    def __init__(self, raffle_id):
        self.raffle_id = raffle_id
        super().__init__(f"Raffle {raffle_id} not found")


class UnknownNetwork(RaffleException):
    """沒有這個部署目標的設定"""
    def __init__(self, network):
        self.network = network
        super().__init__(f"No raffle configuration for network '{network}'")


# ============ Enrollment 相關異常 ============

class NotEnoughPaid(RaffleException):
    """付款少於 entrance fee"""
    def __init__(self, payment, entrance_fee):
        self.payment = payment
        self.entrance_fee = entrance_fee
        super().__init__(
            f"Payment {payment} is below the entrance fee {entrance_fee}"
        )


class RaffleNotOpen(RaffleException):
    """Raffle 正在抽獎中（CALCULATING），不接受報名"""
    def __init__(self, state):
        self.state = state
        super().__init__(f"Raffle is not open (state: {getattr(state, 'value', state)})")


class PlayerNotFound(RaffleException):
    """參加者索引超出範圍"""
    def __init__(self, index):
        self.index = index
        super().__init__(f"No player at index {index}")


# ============ Upkeep 相關異常 ============

class UpkeepNotNeeded(RaffleException):
    """
    Upkeep 條件不成立

    附帶診斷資訊（balance, num_players, raffle_state），讓呼叫者決定是否稍後重試
    """
    def __init__(self, balance, num_players, raffle_state):
        self.balance = balance
        self.num_players = num_players
        self.raffle_state = raffle_state
        super().__init__(
            f"Upkeep not needed (balance={balance}, players={num_players}, "
            f"state={getattr(raffle_state, 'value', raffle_state)})"
        )


# ============ 狀態轉換異常 ============

class InvalidStateTransition(RaffleException):
    """非法的狀態轉換"""
    pass


# ============ Settlement 相關異常 ============

class NoParticipants(RaffleException):
    """沒有參加者，無法選出得主"""
    pass


class TransferFailed(RaffleException):
    """派彩失敗，整筆 settlement 會被 rollback"""
    def __init__(self, recipient, amount):
        self.recipient = recipient
        self.amount = amount
        super().__init__(f"Transfer of {amount} to {recipient} failed")


# ============ VRF Coordinator 相關異常 ============

class NonexistentRequest(RaffleException):
    """Request 不存在或已經被 fulfill 過"""
    def __init__(self, request_id):
        self.request_id = request_id
        super().__init__(f"Randomness request {request_id} does not exist")


class InvalidConsumer(RaffleException):
    """Request 不屬於這個 consumer"""
    def __init__(self, request_id, consumer_id):
        self.request_id = request_id
        self.consumer_id = consumer_id
        super().__init__(
            f"Raffle {consumer_id} is not the consumer of request {request_id}"
        )


class InvalidRandomWords(RaffleException):
    """覆寫的隨機數數量與 request 的 num_words 不符"""
    def __init__(self, request_id, expected, got):
        self.request_id = request_id
        self.expected = expected
        self.got = got
        super().__init__(
            f"Request {request_id} expects {expected} random words, got {got}"
        )
