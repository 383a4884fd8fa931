"""领域层模型与协议。

包含：
- models: Message / ChatRequest / ChatCompletionResponse 等数据模型。
- conversation: 会话历史 ConversationState。
- exceptions: 业务异常类型定义。
"""
