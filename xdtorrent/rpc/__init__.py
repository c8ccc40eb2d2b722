"""JSON-RPC request types, a response writer and Transmission-style message types."""