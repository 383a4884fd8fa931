import tkinter as tk
from tkinter import scrolledtext

from gpt_bot.api.service import get_default_manager, result_to_dict, submit_prompt
from gpt_bot.config.settings import settings
from gpt_bot.providers.registry import OPENAI_CONFIG


class App:
    def __init__(self, root):
        self.root = root
        self.root.title("GPT Bot")
        self.sending = False
        top = tk.Frame(root)
        top.pack(fill=tk.BOTH, expand=True)
        self.chat = scrolledtext.ScrolledText(top, width=80, height=20)
        self.chat.pack(fill=tk.BOTH, expand=True)
        self.chat.tag_config("user", foreground="#1a73e8")
        self.chat.tag_config("assistant", foreground="#34a853")
        self.chat.tag_config("system", foreground="#5f6368")
        self.chat.tag_config("error", foreground="#d93025")
        row = tk.Frame(top)
        row.pack(fill=tk.X)
        self.model = tk.StringVar(value=settings.default_model)
        tk.OptionMenu(row, self.model, *OPENAI_CONFIG.models.keys()).pack(side=tk.LEFT)
        self.entry = tk.Entry(row)
        self.entry.pack(side=tk.LEFT, fill=tk.X, expand=True)
        self.entry.bind("<Return>", self.on_send_event)
        self.send_btn = tk.Button(row, text="发送", command=self.on_send)
        self.send_btn.pack(side=tk.LEFT)
        tk.Button(row, text="清空", command=self.on_reset).pack(side=tk.LEFT)
        self.status = tk.Label(top, text="准备就绪")
        self.status.pack(fill=tk.X)
        if not settings.openai_api_key:
            self.chat.insert(tk.END, "[系统] 未配置 OPENAI_API_KEY（环境变量、.env 或 config.yaml）\n", "error")

    def on_send(self):
        if self.sending:
            return
        text = self.entry.get().strip()
        if not text:
            return
        self.sending = True
        self.send_btn.config(state=tk.DISABLED)
        self.status.config(text="发送中...")
        self.chat.insert(tk.END, f"用户: {text}\n", "user")

        def callback(result):
            # 回调在后台线程执行，切回 Tk 主线程再更新界面
            data = result_to_dict(result)
            self.root.after(0, lambda: self.on_response(data))

        submit_prompt(text, callback, model=self.model.get())

    def on_send_event(self, event):
        self.on_send()
        return "break"

    def on_reset(self):
        get_default_manager().reset()
        self.chat.insert(tk.END, "[系统] 已清空会话\n", "system")

    def on_response(self, data):
        if not data["ok"]:
            self.chat.insert(tk.END, f"错误 [{data['code']}]: {data['message']}\n", "error")
            self.status.config(text="错误")
        else:
            self.chat.insert(tk.END, f"助手: {data['content']}\n", "assistant")
            usage = data.get("usage") or {}
            if usage:
                self.chat.insert(tk.END, f"[系统] tokens: {usage.get('total_tokens')}\n", "system")
            self.entry.delete(0, tk.END)
            self.status.config(text="准备就绪")
        self.chat.see(tk.END)
        self.sending = False
        self.send_btn.config(state=tk.NORMAL)


def main():
    root = tk.Tk()
    App(root)
    try:
        root.mainloop()
    finally:
        get_default_manager().close()


if __name__ == "__main__":
    main()
